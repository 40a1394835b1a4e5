from typing import Optional, Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

# Utils
from utils.log_utils import LogUtil

# Services
from services.flow_service import FlowService

# Models
from models.response.flow_response import FlowResponse, FlowValidationResponse, FlowPreviewResponse

# Exceptions
from exceptions.flow_exception import (
    FlowException,
    FlowBadRequestException,
    FlowValidationException,
    FlowConflictException
)

def _error_response(e: FlowException) -> JSONResponse:
    response = FlowResponse(success=False, error=e.message)
    if isinstance(e, FlowValidationException):
        response.validationErrors = e.validation_errors
    if isinstance(e, FlowConflictException):
        response.storedVersion = e.stored_version
    return JSONResponse(
        status_code=e.status_code,
        content=response.model_dump(mode="json", exclude_none=True)
    )

def _internal_error_response(e: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=FlowResponse(success=False, error=f"Internal server error: {str(e)}").model_dump(exclude_none=True)
    )

def _parse_company_id(value: Any) -> int:
    if value is None or value == "":
        raise FlowBadRequestException(message="companyId is required")
    if isinstance(value, bool):
        raise FlowBadRequestException(message="companyId must be a number")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise FlowBadRequestException(message="companyId must be a number")

def _parse_expected_version(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise FlowBadRequestException(message="expectedVersion must be a non-negative integer")
    return value

def create_flow_api(
    log_util: LogUtil,
    flow_service: FlowService
) -> APIRouter:
    router = APIRouter(
        prefix="/flow",
        tags=["flow"],
    )

    @router.get("")
    async def get_flow(companyId: Optional[str] = None):
        try:
            company_id = _parse_company_id(companyId)
            flow = await flow_service.get_flow(company_id)
            return FlowResponse(success=True, flow=flow).model_dump(mode="json", exclude_none=True)
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error getting flow: {e.message}")
            return _error_response(e)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error getting flow: {e}")
            return _internal_error_response(e)

    async def save_flow(request: Request):
        """
        Save the flow of a company.

        Request body: CompanyFlow plus
        {
            "skipValidation": true | false,   (draft save, default false)
            "expectedVersion": <int>          (optional, must equal the body version; stale saves get 409)
        }
        """
        try:
            try:
                body = await request.json()
            except ValueError:
                raise FlowBadRequestException(message="Request body must be JSON")
            if not isinstance(body, dict):
                raise FlowBadRequestException(message="Request body must be a flow object")

            skip_validation = body.pop("skipValidation", False) is True
            expected_version = _parse_expected_version(body.pop("expectedVersion", None))
            body["companyId"] = _parse_company_id(body.get("companyId"))

            flow = await flow_service.save_flow(
                body,
                skip_validation=skip_validation,
                expected_version=expected_version
            )
            return FlowResponse(
                success=True,
                flow=flow,
                message="Flow saved as draft" if skip_validation else "Flow saved successfully"
            ).model_dump(mode="json", exclude_none=True)
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error saving flow: {e.message}")
            return _error_response(e)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error saving flow: {e}")
            return _internal_error_response(e)

    # PUT is an alias of POST
    router.add_api_route("", save_flow, methods=["POST"])
    router.add_api_route("", save_flow, methods=["PUT"])

    @router.delete("")
    async def clear_flow(companyId: Optional[str] = None):
        """
        Remove the flow of a company (the stored document becomes null).
        Conversations relying on this flow stop having a definition.
        """
        try:
            company_id = _parse_company_id(companyId)
            await flow_service.clear_flow(company_id)
            return FlowResponse(success=True, message="Flow removed successfully").model_dump(exclude_none=True)
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error clearing flow: {e.message}")
            return _error_response(e)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error clearing flow: {e}")
            return _internal_error_response(e)

    @router.post("/duplicate")
    async def duplicate_flow(body: dict):
        """
        Request body:
        {
            "companyId": <int>,
            "name": "New flow name"
        }
        """
        try:
            company_id = _parse_company_id(body.get("companyId"))
            flow = await flow_service.duplicate_flow(company_id, body.get("name") or "")
            return FlowResponse(success=True, flow=flow, message="Flow duplicated successfully").model_dump(
                mode="json", exclude_none=True
            )
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error duplicating flow: {e.message}")
            return _error_response(e)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error duplicating flow: {e}")
            return _internal_error_response(e)

    @router.get("/export")
    async def export_flow(companyId: Optional[str] = None):
        try:
            company_id = _parse_company_id(companyId)
            flow_json = await flow_service.export_flow(company_id)
            return Response(
                content=flow_json,
                media_type="application/json",
                headers={"Content-Disposition": f'attachment; filename="solar-flow-{company_id}.json"'}
            )
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error exporting flow: {e.message}")
            return _error_response(e)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error exporting flow: {e}")
            return _internal_error_response(e)

    @router.post("/import")
    async def import_flow(body: dict):
        """
        Request body:
        {
            "companyId": <int>,
            "flowJson": "<exported flow JSON string>"
        }
        """
        try:
            company_id = _parse_company_id(body.get("companyId"))
            flow = await flow_service.import_flow(company_id, body.get("flowJson"))
            return FlowResponse(success=True, flow=flow, message="Flow imported successfully").model_dump(
                mode="json", exclude_none=True
            )
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error importing flow: {e.message}")
            return _error_response(e)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error importing flow: {e}")
            return _internal_error_response(e)

    @router.post("/validate")
    async def validate_flow(body: dict):
        try:
            body.pop("skipValidation", None)
            body.pop("expectedVersion", None)
            body["companyId"] = _parse_company_id(body.get("companyId"))
            result = flow_service.validate_flow(body)
            return FlowValidationResponse(
                valid=result.valid,
                errors=result.errors,
                warnings=result.warnings
            ).model_dump()
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error validating flow: {e.message}")
            return _error_response(e)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error validating flow: {e}")
            return _internal_error_response(e)

    @router.get("/preview")
    async def preview_flow(companyId: Optional[str] = None):
        try:
            company_id = _parse_company_id(companyId)
            flow, cards = await flow_service.preview_flow(company_id)
            return FlowPreviewResponse(companyId=company_id, version=flow.version, nodes=cards).model_dump()
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error previewing flow: {e.message}")
            return _error_response(e)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error previewing flow: {e}")
            return _internal_error_response(e)

    return router
