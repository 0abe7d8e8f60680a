"""Static table of the services run from source on production hosts."""

from typing import Final

from supastorj.adapters import ProductionService

STORAGE: Final = ProductionService(
    name="storage",
    display_name="Storage API",
    unit="supastorj-storage.service",
    source_dir="storage",
    build_artifact="storage/dist/start/server.js",
    start_command=("node", "storage/dist/start/server.js"),
    port=5000,
    pid_file="storage-api.pid",
    port_variable="SERVER_PORT",
    health_path="/status",
)

POSTGRES_META: Final = ProductionService(
    name="postgres-meta",
    display_name="Postgres Meta API",
    unit="supastorj-postgres-meta.service",
    source_dir="postgres-meta",
    build_artifact="postgres-meta/dist/server/server.js",
    start_command=("node", "postgres-meta/dist/server/server.js"),
    port=5001,
    pid_file="postgres-meta-api.pid",
    port_variable="PG_META_PORT",
    health_path="/health",
    env_prefix="PG_META_",
)

PRODUCTION_SERVICES: Final[tuple[ProductionService, ...]] = (STORAGE, POSTGRES_META)
