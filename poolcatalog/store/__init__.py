from .catalog_store import (
    delete_product,
    get_active_products,
    get_configuration,
    init_db,
    list_products,
    load_catalog,
    save_configuration,
    upsert_product,
)

__all__ = [
    "delete_product",
    "get_active_products",
    "get_configuration",
    "init_db",
    "list_products",
    "load_catalog",
    "save_configuration",
    "upsert_product",
]
