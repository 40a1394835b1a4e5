import json
from typing import Optional, List, Dict, Any, Union, Tuple
from datetime import datetime, timezone

from pydantic import TypeAdapter, ValidationError

# Utils
from utils.log_utils import LogUtil

# Database
from database.flow_db import FlowDB

# Services
from services.flow_validation_service import FlowValidationService
from services.node_render_service import NodeRenderService

# Models
from models.flow_data import CompanyFlow
from models.flow_graph import FlowGraph
from models.node_card_data import NodeCard
from models.validation_data import FlowValidationResult

# Exceptions
from exceptions.flow_exception import (
    FlowException,
    FlowServiceException,
    FlowNotFoundException,
    FlowValidationException,
    FlowBadRequestException,
    FlowConflictException
)

FlowInput = Union[CompanyFlow, Dict[str, Any]]

_datetime_adapter = TypeAdapter(datetime)

class FlowService:
    """
    Load, save and clear the single flow document of each company.

    Saves are last-write-wins unless the caller passes expected_version, in which
    case a save based on a stale version is rejected with FlowConflictException.
    Store errors are never retried here.
    """
    def __init__(self, log_util: LogUtil, flow_db: FlowDB, flow_validation_service: FlowValidationService,
                 node_render_service: NodeRenderService):
        self.log_util = log_util
        self.flow_db = flow_db
        self.flow_validation_service = flow_validation_service
        self.node_render_service = node_render_service

    async def get_flow(self, company_id: int) -> CompanyFlow:
        """
        Get the flow of a company.
        A company that never saved a flow gets an empty default flow (version 0).
        """
        try:
            company = await self.flow_db.get_company(company_id)
            if company is None:
                raise FlowNotFoundException(message=f"Company {company_id} not found")

            return self._flow_from_record(company_id, company)

        except FlowException:
            raise
        except Exception as e:
            self.log_util.error(
                service_name="FlowService",
                message=f"Error getting flow for company {company_id}: {str(e)}"
            )
            raise FlowServiceException(message=f"Error getting flow: {str(e)}")

    async def save_flow(self, flow_data: FlowInput, skip_validation: bool = False,
                        expected_version: Optional[int] = None) -> CompanyFlow:
        """
        Validate (unless skip_validation) and store a flow.

        The stored version is the version carried by flow_data plus one. Draft saves
        (skip_validation=True) accept graphs that fail validation so work in progress
        can be checkpointed.

        With expected_version the flow must carry that same version, so the stored
        version always moves forward by exactly one.
        """
        flow = self._parse_flow(flow_data)
        if expected_version is not None and expected_version != flow.version:
            raise FlowBadRequestException(
                message=f"expectedVersion {expected_version} does not match the flow version {flow.version}"
            )
        graph = FlowGraph.from_company_flow(flow)

        if not skip_validation:
            validation = self.flow_validation_service.validate(graph)
            if not validation.valid:
                raise FlowValidationException(message="Invalid flow", validation_errors=validation.errors)

        try:
            company = await self.flow_db.get_company(flow.companyId)
            if company is None:
                raise FlowNotFoundException(message=f"Company {flow.companyId} not found")

            now = datetime.now(timezone.utc)
            stored_flow = company.get(FlowDB.FLOW_FIELD) or {}
            created_at = flow.createdAt
            if created_at is None and stored_flow.get("createdAt"):
                created_at = _datetime_adapter.validate_python(stored_flow["createdAt"])
            if created_at is None:
                created_at = now

            # Ids handed out before must stay taken, even when the client sends a lower counter
            next_node_id = max(graph.nextNodeId, stored_flow.get("nextNodeId") or 0)

            flow_to_save = flow.model_copy(update={
                "version": flow.version + 1,
                "nextNodeId": next_node_id,
                "createdAt": created_at,
                "updatedAt": now,
            })
            flow_config = flow_to_save.model_dump(mode="json", exclude={"companyId"})

            updated = await self.flow_db.update_flow_config(
                flow.companyId,
                flow_config,
                expected_version=expected_version
            )
            if updated is None:
                if expected_version is not None:
                    await self._raise_conflict(flow.companyId, expected_version)
                raise FlowNotFoundException(message=f"Company {flow.companyId} not found")

            saved_flow = self._flow_from_record(flow.companyId, updated)

            self.log_util.info(
                service_name="FlowService",
                message=f"Flow '{saved_flow.name}' saved for company {flow.companyId}: "
                        f"version {saved_flow.version}, {len(saved_flow.nodes)} node(s), "
                        f"{len(saved_flow.edges)} edge(s), draft={skip_validation}"
            )

            return saved_flow

        except FlowException:
            raise
        except Exception as e:
            self.log_util.error(
                service_name="FlowService",
                message=f"Error saving flow for company {flow.companyId}: {str(e)}"
            )
            raise FlowServiceException(message=f"Error saving flow: {str(e)}")

    def validate_flow(self, flow_data: FlowInput) -> FlowValidationResult:
        """
        Dry-run the validator without saving anything
        """
        flow = self._parse_flow(flow_data)
        return self.flow_validation_service.validate(FlowGraph.from_company_flow(flow))

    async def clear_flow(self, company_id: int) -> None:
        """
        Set the company's stored flow to null.
        Any conversation running on this flow loses its definition.
        """
        try:
            cleared = await self.flow_db.clear_flow_config(company_id)
            if not cleared:
                raise FlowNotFoundException(message=f"Company {company_id} not found")

            self.log_util.warning(
                service_name="FlowService",
                message=f"Flow cleared for company {company_id}"
            )

        except FlowException:
            raise
        except Exception as e:
            self.log_util.error(
                service_name="FlowService",
                message=f"Error clearing flow for company {company_id}: {str(e)}"
            )
            raise FlowServiceException(message=f"Error clearing flow: {str(e)}")

    async def duplicate_flow(self, company_id: int, new_name: str) -> CompanyFlow:
        """
        Rename the company's flow and restart its history: the stored copy gets version 1.
        A company keeps a single flow, this does not create a second one.
        """
        if not new_name or not new_name.strip():
            raise FlowBadRequestException(message="name is required")

        flow = await self.get_flow(company_id)
        now = datetime.now(timezone.utc)
        duplicated_flow = flow.model_copy(update={
            "name": new_name.strip(),
            "version": 0,
            "createdAt": now,
            "updatedAt": now,
        })
        return await self.save_flow(duplicated_flow, skip_validation=True)

    async def export_flow(self, company_id: int) -> str:
        """
        The company's flow as pretty-printed JSON, for backups
        """
        flow = await self.get_flow(company_id)
        return flow.model_dump_json(indent=2)

    async def import_flow(self, company_id: int, flow_json: str) -> CompanyFlow:
        """
        Store a flow exported earlier (possibly from another company) as this company's flow.
        The imported document starts over at version 1.
        """
        try:
            imported = json.loads(flow_json)
        except (TypeError, ValueError):
            raise FlowBadRequestException(message="Invalid JSON")
        if not isinstance(imported, dict):
            raise FlowBadRequestException(message="Invalid JSON: expected a flow object")

        now = datetime.now(timezone.utc)
        imported.update({
            "companyId": company_id,
            "version": 0,
            "createdAt": now,
            "updatedAt": now,
        })
        return await self.save_flow(imported, skip_validation=True)

    async def preview_flow(self, company_id: int) -> Tuple[CompanyFlow, List[NodeCard]]:
        """
        The stored flow together with its node cards, both from the same read
        """
        flow = await self.get_flow(company_id)
        return flow, self.node_render_service.render_graph(FlowGraph.from_company_flow(flow))

    def _parse_flow(self, flow_data: FlowInput) -> CompanyFlow:
        """
        Turn request input into a CompanyFlow, rejecting malformed input before the store is touched
        """
        if isinstance(flow_data, CompanyFlow):
            return flow_data
        if not isinstance(flow_data, dict):
            raise FlowBadRequestException(message="Flow must be an object")
        if flow_data.get("companyId") in (None, ""):
            raise FlowBadRequestException(message="companyId is required")
        try:
            return CompanyFlow.model_validate(flow_data)
        except ValidationError as e:
            raise FlowBadRequestException(message=f"Malformed flow: {e}")

    def _flow_from_record(self, company_id: int, company: Dict[str, Any]) -> CompanyFlow:
        flow_config = company.get(FlowDB.FLOW_FIELD)
        if not flow_config:
            return CompanyFlow(companyId=company_id, nextNodeId=1)

        try:
            return CompanyFlow.model_validate({**flow_config, "companyId": company_id})
        except ValidationError as e:
            self.log_util.error(
                service_name="FlowService",
                message=f"Stored flow of company {company_id} is unreadable: {str(e)}"
            )
            raise FlowServiceException(message=f"Stored flow of company {company_id} is unreadable")

    async def _raise_conflict(self, company_id: int, expected_version: int) -> None:
        company = await self.flow_db.get_company(company_id)
        if company is None:
            raise FlowNotFoundException(message=f"Company {company_id} not found")

        stored_version = (company.get(FlowDB.FLOW_FIELD) or {}).get("version", 0)
        self.log_util.warning(
            service_name="FlowService",
            message=f"Version conflict for company {company_id}: expected {expected_version}, stored {stored_version}"
        )
        raise FlowConflictException(
            message=f"Flow was changed by someone else (expected version {expected_version}, stored {stored_version})",
            expected_version=expected_version,
            stored_version=stored_version
        )
