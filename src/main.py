import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

# Utils
from utils.log_utils import LogUtil
from utils.environment_utils import EnvironmentUtils

# Database
from database.flow_db import FlowDB

# Services
from services.flow_service import FlowService
from services.flow_validation_service import FlowValidationService
from services.node_render_service import NodeRenderService
from services.flow_template_service import FlowTemplateService

# APIs
from apis.flow_api import create_flow_api
from apis.node_catalog_api import create_node_catalog_api
from apis.flow_template_api import create_flow_template_api

# Exceptions
from exceptions.flow_exception import FlowException

# Utils
log_util = LogUtil()
environment_utils = EnvironmentUtils(log_util=log_util)

# Database
flow_db = FlowDB(log_util=log_util, environment_utils=environment_utils)

# Services
flow_validation_service = FlowValidationService(log_util=log_util)
node_render_service = NodeRenderService(log_util=log_util)
flow_template_service = FlowTemplateService(log_util=log_util)

flow_service = FlowService(
    log_util=log_util,
    flow_db=flow_db,
    flow_validation_service=flow_validation_service,
    node_render_service=node_render_service
)

# Define lifespan function
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log_util.info(service_name="SolarFlowService", message="Application startup complete")

    yield

    # Shutdown
    flow_db.close()
    log_util.info(service_name="SolarFlowService", message="Application shutdown complete")

# Create FastAPI app
app = FastAPI(
    title="solar flow service",
    description="Conversation flow builder for solar sales chatbots",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Flow management APIs
flow_api_router = create_flow_api(
    log_util=log_util,
    flow_service=flow_service
)
app.include_router(flow_api_router)

# Node catalog API (palette of node types)
node_catalog_router = create_node_catalog_api(log_util=log_util)
app.include_router(node_catalog_router)

# Flow templates API
flow_template_router = create_flow_template_api(
    log_util=log_util,
    flow_template_service=flow_template_service
)
app.include_router(flow_template_router)

# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "solar_flow_service"}

# Global exception handler for flow errors that escaped a router
@app.exception_handler(FlowException)
async def flow_exception_handler(request: Request, exc: FlowException):
    log_util.error(service_name="SolarFlowService", message=f"FlowException: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.message,
            "status_code": exc.status_code
        }
    )

# HTTPExceptions raised by the catalog and template routers use the same shape as flow errors
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    log_util.warning(service_name="SolarFlowService", message=f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "status_code": exc.status_code}
    )

# Anything not handled by a router
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    log_util.error(service_name="SolarFlowService", message=f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "status_code": 500}
    )

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=environment_utils.get_env_variable("HOST"),
        port=int(environment_utils.get_env_variable("PORT"))
    )
