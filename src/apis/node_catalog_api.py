from fastapi import APIRouter
from fastapi.exceptions import HTTPException

# Utils
from utils.log_utils import LogUtil

# Models
from models.node_catalog import (
    NODE_CATEGORIES,
    NODE_DEFINITIONS,
    get_category,
    get_node_definition,
    get_node_definitions_by_category
)


def create_node_catalog_api(
    log_util: LogUtil
) -> APIRouter:
    router = APIRouter(
        prefix="/node-catalog",
        tags=["node-catalog"],
    )

    @router.get("/list")
    async def get_all_node_definitions():
        """
        Get all node definitions, in palette order
        """
        return [definition.model_dump(mode="json") for definition in NODE_DEFINITIONS]

    @router.get("/categories")
    async def get_node_categories():
        return [category.model_dump() for category in NODE_CATEGORIES]

    @router.get("/category/{category}")
    async def get_node_definitions_for_category(category: str):
        """
        Get node definitions by category (start, capture, media, decision, action, end)
        """
        if get_category(category) is None:
            valid_categories = [c.id for c in NODE_CATEGORIES]
            raise HTTPException(
                status_code=400,
                detail=f"Invalid category. Must be one of: {', '.join(valid_categories)}"
            )
        return [definition.model_dump(mode="json") for definition in get_node_definitions_by_category(category)]

    @router.get("/{node_type}")
    async def get_node_definition_by_type(node_type: str):
        """
        Get node definition by node type (e.g., "GREETING", "CONDITION", etc.)
        """
        try:
            definition = get_node_definition(node_type.upper())
        except ValueError:
            log_util.warning(service_name="NodeCatalogAPI", message=f"Unknown node type requested: {node_type}")
            raise HTTPException(status_code=404, detail=f"Node definition not found for node type: {node_type}")
        return definition.model_dump(mode="json")

    return router
