from galleryharvest.api.routers.systems import create_systems_router


def _get_endpoint(router, path: str, method: str):
    for route in router.routes:
        if getattr(route, "path", None) != path:
            continue
        if method.upper() in getattr(route, "methods", set()):
            return route.endpoint
    raise AssertionError(f"No route found for {method} {path}")


def test_health():
    router = create_systems_router({})
    assert _get_endpoint(router, "/systems/health", "GET")() == {"status": "ok"}


def test_config_masks_secrets():
    env = {"BRAVE_API_KEY": "abc", "HARVEST_MAX_SITES": 5, "UNSET": None}
    router = create_systems_router(env, secret_keys={"BRAVE_API_KEY"})

    resp = _get_endpoint(router, "/systems/config", "GET")()

    assert resp == {"environment": {"BRAVE_API_KEY": "***", "HARVEST_MAX_SITES": "5", "UNSET": None}}
