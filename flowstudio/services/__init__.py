"""Services: persistence gateway, deploy engine, catalog and assignment."""

from flowstudio.services.assignment import assign_flow, select_flow_for_user
from flowstudio.services.catalog import StaticTemplateCatalog, builtin_catalog
from flowstudio.services.deploy import DeployEngine
from flowstudio.services.persistence import PersistenceGateway

__all__ = [
    "DeployEngine",
    "PersistenceGateway",
    "StaticTemplateCatalog",
    "assign_flow",
    "builtin_catalog",
    "select_flow_for_user",
]
