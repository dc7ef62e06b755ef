import pytest

from mapban.backend.catalog import MapCatalog
from mapban.backend.registry import SessionRegistry


@pytest.fixture
def catalog() -> MapCatalog:
    return MapCatalog.default()


@pytest.fixture
def registry(catalog: MapCatalog) -> SessionRegistry:
    return SessionRegistry(catalog)


@pytest.fixture
def scenario_pool() -> list[str]:
    return ["Bank", "Border", "Chalet", "Clubhouse", "Coastline", "Consulate", "Kafe"]
