from unittest.mock import Mock

from galleryharvest.api.auth import require_admin
from galleryharvest.api.routers.staging_cache import create_staging_cache_router


def _get_route(router, path: str, method: str):
    for route in router.routes:
        if getattr(route, "path", None) == path and method.upper() in getattr(route, "methods", set()):
            return route
    raise AssertionError(f"No route found for {method} {path}")


def test_stats_passthrough():
    cache = Mock(get_cache_stats=Mock(return_value={"total_jobs": 1, "total_images": 2, "total_size_bytes": 3}))
    route = _get_route(create_staging_cache_router(cache, Mock()), "/staging-cache/stats", "GET")
    assert route.endpoint()["total_images"] == 2


def test_sweep_and_clear_require_admin():
    cache = Mock()
    sweeper = Mock(sweep=Mock(return_value=4))
    router = create_staging_cache_router(cache, sweeper)

    sweep = _get_route(router, "/staging-cache/sweep", "POST")
    clear = _get_route(router, "/staging-cache/clear", "POST")

    for route in (sweep, clear):
        assert [d.dependency for d in route.dependencies] == [require_admin]

    assert sweep.endpoint(max_age_hours=1.0) == {"status": "swept", "removed": 4}
    sweeper.sweep.assert_called_once_with(1.0)
    assert clear.endpoint() == {"status": "cleared"}
    cache.clear_all_cache.assert_called_once()
