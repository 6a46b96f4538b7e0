from app.config import settings
from app.habits.catalog import CatalogLoader

catalog_loader = CatalogLoader.from_settings(settings)


async def get_loader() -> CatalogLoader:
    return catalog_loader
