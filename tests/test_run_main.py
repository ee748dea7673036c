"""
Tests for run.py main() with an injected container.
"""
from unittest.mock import Mock, patch

from run import main
from galleryharvest.container import Container


def _container(tmp_path):
    container = Container()
    container.config.DATABASE_URL.from_value("sqlite://")
    container.config.HARVEST_CACHE_DIR.from_value(str(tmp_path / "staging"))
    container.config.HARVEST_OBJECT_STORE_DIR.from_value(str(tmp_path / "storage"))
    container.config.BRAVE_API_KEY.from_value("test-key")
    return container


def test_container_creates_services(tmp_path):
    container = _container(tmp_path)

    assert container.http_service() is container.http_service()
    assert container.site_detector().http_service is container.http_service()
    orchestrator = container.orchestrator()
    assert orchestrator.search_api_key == "test-key"
    assert orchestrator.staging_cache is container.staging_cache()
    assert container.staged_importer().object_store is container.object_store()
    assert (tmp_path / "staging").is_dir()
    orchestrator.shutdown(clear_cache=False)


def test_main_accepts_injected_container(tmp_path):
    container = _container(tmp_path)
    sweeper = Mock()
    container.cache_sweeper.override(sweeper)

    with patch('run.uvicorn.run') as mock_uvicorn:
        main(container=container)

    assert mock_uvicorn.called
    app = mock_uvicorn.call_args.args[0]
    paths = {route.path for route in app.routes}
    assert "/search-jobs" in paths
    assert "/search-jobs/{job_id}/staged-images" in paths
    assert "/staging-cache/stats" in paths
    assert "/systems/health" in paths
    sweeper.start.assert_called_once()
    sweeper.shutdown.assert_called_once_with(wait=False)
