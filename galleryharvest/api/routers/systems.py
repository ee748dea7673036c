from typing import Iterable

from fastapi import APIRouter


def create_systems_router(container_env: dict, secret_keys: Iterable[str] = ()):
    """Create systems router with access to container environment config."""
    router = APIRouter(prefix="/systems", tags=["System"])
    secrets = set(secret_keys)

    def _render(key, value):
        if value is None:
            return None
        if key in secrets:
            return "***"
        return str(value)

    @router.get("/health")
    def health():
        return {"status": "ok"}

    @router.get("/config")
    def get_config():
        """Return current environment configuration values, secrets masked."""
        return {
            "environment": {
                key: _render(key, value)
                for key, value in container_env.items()
            }
        }

    return router
