"""Application entry point for the classroom API server."""

from __future__ import annotations

from classroom_app.constants.about import APP_NAME
from classroom_app.core.classroom_services import ClassroomServices
from classroom_app.core.services.blob_store import LocalBlobStore
from classroom_app.core.services.document_store import DocumentStore, InMemoryDocumentStore
from classroom_app.core.services.mongo_store import MongoDocumentStore
from classroom_app.server.api_server import run_api_server
from classroom_app.utils.logging_config import configure_logging
from classroom_app.utils.settings import Settings


def _create_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "mongo":
        return MongoDocumentStore.connect(settings.mongodb_url, settings.mongodb_db)
    if settings.store_backend != "memory":
        raise ValueError(f"Unknown store backend '{settings.store_backend}'.")
    return InMemoryDocumentStore()


def main() -> None:
    """Initialize logging, build the services, and serve the API."""
    settings = Settings.from_env()
    logger = configure_logging(settings.log_level)
    logger.info("Starting %s with the %s store", APP_NAME, settings.store_backend)

    store = _create_store(settings)
    services = ClassroomServices.create(store=store, blobs=LocalBlobStore(settings.upload_dir))
    try:
        run_api_server(
            services,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level,
        )
    finally:
        services.shutdown()
        if isinstance(store, MongoDocumentStore):
            store.close()


if __name__ == "__main__":
    main()
