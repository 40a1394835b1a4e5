from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ReturnDocument
from pymongo.errors import NetworkTimeout, ServerSelectionTimeoutError, ConnectionFailure
import urllib.parse
import threading
import asyncio
from typing import Optional, Dict, Any
from datetime import datetime, timezone
import weakref

# Utils
from utils.log_utils import LogUtil
from utils.environment_utils import EnvironmentUtils

# Exceptions
from exceptions.flow_exception import FlowDBException

"""
Database class for company flow documents.

Each company record holds its whole flow as a single value in the 'flow_config'
field, null when nothing was saved yet or after the flow was cleared.
"""
class FlowDB:
    FLOW_FIELD = "flow_config"

    def __init__(self, log_util: LogUtil, environment_utils: EnvironmentUtils):

        # Initialize logger
        self.log_util = log_util

        # Initialize environment utils
        self.environment_utils = environment_utils

        # Mongo settings
        self.mongo_uri = self._build_mongo_uri()
        self.db_name = self.environment_utils.get_env_variable("MONGO_DB_NAME")
        self.companies_collection = self.environment_utils.get_env_variable("MONGO_COMPANIES_COLLECTION")

        # Mongo Connection Pool Configs
        self.max_pool_size = 50
        self.min_pool_size = 0  # Create connections on-demand instead of at startup
        self.max_idle_time_ms = 30000
        self.wait_queue_timeout_ms = 10000
        self.connect_timeout_ms = 10000
        self.server_selection_timeout_ms = 10000
        self.socket_timeout_ms = 10000

        # One client per event loop, created lazily on first use
        self._clients = {}  # {loop_id: client_data}

        # Thread-safe initialization lock
        self._client_lock = threading.Lock()

    def _build_mongo_uri(self) -> str:
        mongo_uri = self.environment_utils.get_env_variable("MONGO_URI")
        if mongo_uri:
            return mongo_uri

        host = self.environment_utils.get_env_variable("MONGO_HOST")
        port = int(self.environment_utils.get_env_variable("MONGO_PORT"))
        username = self.environment_utils.get_env_variable("MONGO_USERNAME")
        password = self.environment_utils.get_env_variable("MONGO_PASSWORD")
        if not username:
            return f"mongodb://{host}:{port}/"

        auth_source = self.environment_utils.get_env_variable("MONGO_AUTH_SOURCE")
        username = urllib.parse.quote_plus(username)
        password = urllib.parse.quote_plus(password)
        return f"mongodb://{username}:{password}@{host}:{port}/?authSource={auth_source}"

    def _get_client_for_current_loop(self):
        """
        Thread-safe method to get the MongoDB client and collections for the current event loop.
        Motor clients are bound to the loop they were created on, so each loop gets its own.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError("No event loop available. Database methods must be called from an async context.")

        loop_id = id(loop)

        if loop_id in self._clients:
            return self._clients[loop_id]

        with self._client_lock:
            # Double-check after acquiring lock (another thread might have created it)
            if loop_id in self._clients:
                return self._clients[loop_id]

            client = AsyncIOMotorClient(
                self.mongo_uri,
                maxPoolSize=self.max_pool_size,
                minPoolSize=self.min_pool_size,
                maxIdleTimeMS=self.max_idle_time_ms,
                waitQueueTimeoutMS=self.wait_queue_timeout_ms,
                connectTimeoutMS=self.connect_timeout_ms,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                socketTimeoutMS=self.socket_timeout_ms,
                retryWrites=True,
                retryReads=True
            )
            db = client[self.db_name]

            client_data = {
                'client': client,
                'db': db,
                'collections': {
                    'companies': db[self.companies_collection],
                },
                'loop': weakref.ref(loop)
            }
            self._clients[loop_id] = client_data

            self.log_util.info(
                service_name="FlowDB",
                message=f"MongoDB client initialized for event loop {loop_id} (lazy initialization)"
            )

            return client_data

    def close(self):
        """
        Close all MongoDB clients and cleanup resources
        """
        with self._client_lock:
            for loop_id, client_data in self._clients.items():
                try:
                    client_data['client'].close()
                except Exception as e:
                    self.log_util.warning(
                        service_name="FlowDB",
                        message=f"Error closing client for loop {loop_id}: {str(e)}"
                    )

            self._clients.clear()

            self.log_util.info(
                service_name="FlowDB",
                message="All MongoDB clients closed"
            )

    def _handle_db_operation(self, operation_name: str, error: Exception) -> None:
        """
        Log a failed database operation and raise it as a FlowDBException.

        Args:
            operation_name: Name of the operation that failed
            error: The exception that occurred
        """
        if isinstance(error, (NetworkTimeout, ServerSelectionTimeoutError, ConnectionFailure)):
            self.log_util.error(
                service_name="FlowDB",
                message=f"Database connection error in {operation_name}: {str(error)}"
            )
            raise FlowDBException(
                message=f"Database connection error: {str(error)}",
                status_code=503  # Service Unavailable
            ) from error

        self.log_util.error(
            service_name="FlowDB",
            message=f"Error in {operation_name}: {str(error)}"
        )
        raise FlowDBException(
            message=f"Database error: {str(error)}",
            status_code=500
        ) from error

    # Company flow operations
    async def get_company(self, company_id: int) -> Optional[Dict[str, Any]]:
        """
        Get a company record with its stored flow document.
        Returns None when the company does not exist.
        """
        client_data = self._get_client_for_current_loop()
        try:
            return await client_data['collections']['companies'].find_one(
                {"_id": company_id},
                {"name": 1, self.FLOW_FIELD: 1}
            )
        except Exception as e:
            self._handle_db_operation("get_company", e)

    async def update_flow_config(
        self,
        company_id: int,
        flow_config: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Overwrite the stored flow document of a company.

        Args:
            company_id: Company record id
            flow_config: The complete flow document
            expected_version: When given, the write only happens if the stored
                version still equals it (0 also matches an empty record)

        Returns the updated company record, or None when nothing matched.
        """
        client_data = self._get_client_for_current_loop()
        query: Dict[str, Any] = {"_id": company_id}
        if expected_version is not None:
            version_field = f"{self.FLOW_FIELD}.version"
            if expected_version == 0:
                query["$or"] = [{self.FLOW_FIELD: None}, {version_field: 0}]
            else:
                query[version_field] = expected_version

        try:
            return await client_data['collections']['companies'].find_one_and_update(
                query,
                {
                    "$set": {
                        self.FLOW_FIELD: flow_config,
                        "updated_at": datetime.now(timezone.utc)
                    }
                },
                projection={"name": 1, self.FLOW_FIELD: 1},
                return_document=ReturnDocument.AFTER
            )
        except Exception as e:
            self._handle_db_operation("update_flow_config", e)

    async def clear_flow_config(self, company_id: int) -> bool:
        """
        Set the stored flow document of a company to null.
        Returns False when the company does not exist.
        """
        client_data = self._get_client_for_current_loop()
        try:
            result = await client_data['collections']['companies'].update_one(
                {"_id": company_id},
                {
                    "$set": {
                        self.FLOW_FIELD: None,
                        "updated_at": datetime.now(timezone.utc)
                    }
                }
            )
            return result.matched_count > 0
        except Exception as e:
            self._handle_db_operation("clear_flow_config", e)
