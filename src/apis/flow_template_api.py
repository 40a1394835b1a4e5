from typing import Optional

from fastapi import APIRouter
from fastapi.exceptions import HTTPException
from pydantic import BaseModel, ValidationError

# Utils
from utils.log_utils import LogUtil

# Services
from services.flow_template_service import FlowTemplateService

# Models
from models.flow_data import GlobalConfig

# Exceptions
from exceptions.flow_exception import FlowNotFoundException


class InstantiateTemplateRequest(BaseModel):
    globalConfig: Optional[dict] = None


def create_flow_template_api(
    log_util: LogUtil,
    flow_template_service: FlowTemplateService
) -> APIRouter:
    router = APIRouter(
        prefix="/flow-templates",
        tags=["flow-templates"],
    )

    @router.get("/list")
    async def get_all_templates():
        return [
            {
                "id": template.id,
                "name": template.name,
                "category": template.category,
                "description": template.description,
                "icon": template.icon,
                "nodeCount": len(template.nodes),
            }
            for template in flow_template_service.list_templates()
        ]

    @router.get("/{template_id}")
    async def get_template(template_id: str):
        try:
            return flow_template_service.get_template(template_id).model_dump(mode="json")
        except FlowNotFoundException as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.post("/{template_id}/instantiate")
    async def instantiate_template(template_id: str, body: Optional[InstantiateTemplateRequest] = None):
        """
        Build a fresh graph from a template. The caller's current globalConfig can be
        passed along so it is kept in the returned graph.

        Nothing is saved: the result is meant to be loaded into the editor.
        """
        try:
            template = flow_template_service.get_template(template_id)
            global_config = None
            if body is not None and body.globalConfig is not None:
                global_config = GlobalConfig.model_validate(body.globalConfig)

            graph = flow_template_service.instantiate(template, global_config)
            return graph.model_dump(mode="json")
        except FlowNotFoundException as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except ValidationError as e:
            log_util.warning(service_name="FlowTemplateAPI", message=f"Invalid globalConfig for template {template_id}: {e}")
            raise HTTPException(status_code=400, detail=f"Invalid globalConfig: {e}")

    return router
