from motor.motor_asyncio import AsyncIOMotorClient
from bson import ObjectId
import urllib.parse
import threading
import asyncio
from typing import Optional, List, Dict, Any
from datetime import datetime
import weakref
from pymongo import ReturnDocument
from pymongo.errors import NetworkTimeout, ServerSelectionTimeoutError, ConnectionFailure, DuplicateKeyError

# Utils
from utils.log_utils import LogUtil
from utils.environment_utils import EnvironmentUtils

# Exceptions
from exceptions.country_guard_exception import CountryGuardDBException, ConfigurationConflictException

# Models
from models.handler_configuration_data import HandlerConfigurationData
from models.submission_record_data import SubmissionRecordData
from models.retry_state_data import RetryStateScope

"""
Database class for country guard operations
"""
class CountryGuardDB:
    def __init__(self, log_util: LogUtil, environment_utils: EnvironmentUtils):

        # Initialize logger
        self.log_util = log_util

        # Initialize environment utils
        self.environment_utils = environment_utils

        # Mongo credentials
        self.username = urllib.parse.quote_plus(self.environment_utils.get_env_variable("MONGO_USERNAME"))
        self.password = urllib.parse.quote_plus(self.environment_utils.get_env_variable("MONGO_PASSWORD"))
        self.auth_source = self.environment_utils.get_env_variable("MONGO_AUTH_SOURCE")
        self.host = self.environment_utils.get_env_variable("MONGO_HOST")
        self.port = int(self.environment_utils.get_env_variable("MONGO_PORT"))
        self.db_name = self.environment_utils.get_env_variable("MONGO_DB_NAME")

        # Mongo Connection Pool Configs
        self.max_pool_size = 50
        self.min_pool_size = 0  # Create connections on-demand instead of at startup
        self.max_idle_time_ms = 30000
        self.wait_queue_timeout_ms = 10000
        self.connect_timeout_ms = 10000
        self.server_selection_timeout_ms = 10000
        self.socket_timeout_ms = 10000

        # One client per event loop: {loop_id: client_data}
        self._clients = {}

        # Thread-safe initialization lock
        self._client_lock = threading.Lock()

    def _get_client_for_current_loop(self):
        """
        Thread-safe method to get the MongoDB client and collections for the current event loop.
        Returns a dictionary with 'client', 'db', and 'collections' for the current event loop.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError("No event loop available. Database methods must be called from an async context.")

        loop_id = id(loop)

        if loop_id in self._clients:
            return self._clients[loop_id]

        with self._client_lock:
            # Another thread might have created it while we waited
            if loop_id in self._clients:
                return self._clients[loop_id]

            client = AsyncIOMotorClient(
                f"mongodb://{self.username}:{self.password}@{self.host}:{self.port}/?authSource={self.auth_source}",
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
                'collections': self._initialize_collections_for_client(db),
                'loop': weakref.ref(loop)
            }
            self._clients[loop_id] = client_data

            self.log_util.info(
                service_name="CountryGuardDB",
                message=f"MongoDB client initialized for event loop {loop_id} (lazy initialization)"
            )
            return client_data

    def _initialize_collections_for_client(self, db):
        return {
            'handler_configurations': db.handler_configurations,
            'submissions': db.submissions,
            'retry_states': db.retry_states
        }

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
                        service_name="CountryGuardDB",
                        message=f"Error closing client for loop {loop_id}: {str(e)}"
                    )
            self._clients.clear()
            self.log_util.info(
                service_name="CountryGuardDB",
                message="All MongoDB clients closed"
            )

    def _handle_db_operation(self, operation_name: str, error: Exception) -> None:
        """
        Log a failed database operation and re-raise it wrapped in CountryGuardDBException.
        Connection problems map to 503, everything else to 500.
        """
        if isinstance(error, (NetworkTimeout, ServerSelectionTimeoutError, ConnectionFailure)):
            self.log_util.error(
                service_name="CountryGuardDB",
                message=f"Database connection error in {operation_name}: {str(error)}"
            )
            raise CountryGuardDBException(
                message=f"Database connection error: {str(error)}",
                status_code=503
            )
        self.log_util.error(
            service_name="CountryGuardDB",
            message=f"Error in {operation_name}: {str(error)}"
        )
        raise CountryGuardDBException(
            message=f"Database error: {str(error)}",
            status_code=500
        )

    # Handler configuration operations
    async def create_handler_configuration(self, configuration: HandlerConfigurationData) -> HandlerConfigurationData:
        """
        Insert a handler configuration. One configuration per (form_id, handler_id).
        """
        client_data = self._get_client_for_current_loop()
        collection = client_data['collections']['handler_configurations']
        try:
            existing = await collection.find_one({"form_id": configuration.form_id, "handler_id": configuration.handler_id})
            if existing is not None:
                raise ConfigurationConflictException(
                    message=f"Handler {configuration.handler_id} already configured on form {configuration.form_id}"
                )
            config_dict = configuration.model_dump(exclude={"id"})
            result = await collection.insert_one(config_dict)
            configuration.id = str(result.inserted_id)
            return configuration
        except ConfigurationConflictException:
            raise
        except DuplicateKeyError:
            raise ConfigurationConflictException(
                message=f"Handler {configuration.handler_id} already configured on form {configuration.form_id}"
            )
        except Exception as e:
            self._handle_db_operation("create_handler_configuration", e)

    async def get_handler_configuration(self, form_id: str, handler_id: str) -> Optional[HandlerConfigurationData]:
        client_data = self._get_client_for_current_loop()
        try:
            result = await client_data['collections']['handler_configurations'].find_one(
                {"form_id": form_id, "handler_id": handler_id}
            )
            if result is None:
                return None
            result["id"] = str(result.pop("_id"))
            return HandlerConfigurationData.model_validate(result)
        except Exception as e:
            self._handle_db_operation("get_handler_configuration", e)

    async def get_handler_configurations_by_form(self, form_id: str) -> List[HandlerConfigurationData]:
        client_data = self._get_client_for_current_loop()
        try:
            configurations = []
            cursor = client_data['collections']['handler_configurations'].find({"form_id": form_id})
            async for document in cursor:
                document["id"] = str(document.pop("_id"))
                configurations.append(HandlerConfigurationData.model_validate(document))
            return configurations
        except Exception as e:
            self._handle_db_operation("get_handler_configurations_by_form", e)

    async def update_handler_configuration(self, configuration: HandlerConfigurationData) -> Optional[HandlerConfigurationData]:
        client_data = self._get_client_for_current_loop()
        try:
            update_dict = configuration.model_dump(exclude={"id", "form_id", "handler_id", "created_at"})
            update_dict["updated_at"] = datetime.utcnow()
            result = await client_data['collections']['handler_configurations'].find_one_and_update(
                {"form_id": configuration.form_id, "handler_id": configuration.handler_id},
                {"$set": update_dict},
                return_document=ReturnDocument.AFTER
            )
            if result is None:
                return None
            result["id"] = str(result.pop("_id"))
            return HandlerConfigurationData.model_validate(result)
        except Exception as e:
            self._handle_db_operation("update_handler_configuration", e)

    async def delete_handler_configuration(self, form_id: str, handler_id: str) -> bool:
        client_data = self._get_client_for_current_loop()
        try:
            result = await client_data['collections']['handler_configurations'].delete_one(
                {"form_id": form_id, "handler_id": handler_id}
            )
            return result.deleted_count > 0
        except Exception as e:
            self._handle_db_operation("delete_handler_configuration", e)

    # Submission operations
    async def save_submission(self, submission: SubmissionRecordData) -> SubmissionRecordData:
        """
        Insert a new submission or replace an existing one by id
        """
        client_data = self._get_client_for_current_loop()
        collection = client_data['collections']['submissions']
        try:
            submission.updated_at = datetime.utcnow()
            submission_dict = submission.model_dump(exclude={"id"})
            if submission.id:
                await collection.replace_one({"_id": ObjectId(submission.id)}, submission_dict, upsert=True)
            else:
                result = await collection.insert_one(submission_dict)
                submission.id = str(result.inserted_id)
            return submission
        except Exception as e:
            self._handle_db_operation("save_submission", e)

    # Retry state operations
    # Store faults are never raised: reads fall back to absent, writes are best effort.
    async def get_retry_values(self, scope: RetryStateScope) -> Dict[str, Any]:
        try:
            client_data = self._get_client_for_current_loop()
            result = await client_data['collections']['retry_states'].find_one({"_id": scope.document_id})
            if result is None:
                return {}
            return result.get("values", {})
        except Exception as e:
            self.log_util.warning(
                service_name="CountryGuardDB",
                message=f"Retry state read failed for {scope.key}, treating as absent: {str(e)}"
            )
            return {}

    async def set_retry_values(self, scope: RetryStateScope, values: Dict[str, Any]) -> bool:
        """
        Set several retry values in one write so related keys never diverge
        """
        try:
            client_data = self._get_client_for_current_loop()
            update_dict = {f"values.{key}": value for key, value in values.items()}
            update_dict["updated_at"] = datetime.utcnow()
            await client_data['collections']['retry_states'].update_one(
                {"_id": scope.document_id},
                {"$set": update_dict},
                upsert=True
            )
            return True
        except Exception as e:
            self.log_util.warning(
                service_name="CountryGuardDB",
                message=f"Retry state write failed for {scope.key}, ignoring: {str(e)}"
            )
            return False

    async def delete_retry_values(self, scope: RetryStateScope) -> bool:
        """
        Remove the whole retry state document of the scope
        """
        try:
            client_data = self._get_client_for_current_loop()
            await client_data['collections']['retry_states'].delete_one({"_id": scope.document_id})
            return True
        except Exception as e:
            self.log_util.warning(
                service_name="CountryGuardDB",
                message=f"Retry state delete failed for {scope.key}, ignoring: {str(e)}"
            )
            return False
