# Cosmos DB backed record store for posts

import logging
import time
import backoff
from typing import Optional, List, Dict, Any
from azure.cosmos import CosmosClient, exceptions
from azure.cosmos.container import ContainerProxy
from src.shared.logging_utils import info as log_info, warning as log_warning, error as log_error
from src.specs.common.errors import RecordNotFoundError
from src.specs.db.post import PostDoc

RETRYABLE_STATUS_CODES = (429, 503)  # Too Many Requests, Service Unavailable


class RetryableCosmosError(Exception):
    """Indicates a Cosmos DB operation that should be retried"""
    pass


def _raise_if_retryable(exc: exceptions.CosmosHttpResponseError, action: str, item_id: Optional[str] = None) -> None:
    if exc.status_code in RETRYABLE_STATUS_CODES:
        log_warning(None, "cosmos:posts:throttled", action=action, itemId=item_id, status=exc.status_code)
        raise RetryableCosmosError(f"Retryable error during {action}: {exc}") from exc
    log_error(None, "cosmos:posts:failed", action=action, itemId=item_id, status=exc.status_code, error=str(exc))


class CosmosDBClient:
    # Max retries and timeout configuration
    MAX_RETRIES = 3
    OPERATION_TIMEOUT = 10.0    # 10s

    def __init__(self, connection_string: str, database_name: str, container_name: str):
        """Initialize the Cosmos DB client for the posts container"""
        self.database_name = database_name
        self.container_name = container_name
        self.client = CosmosClient.from_connection_string(
            connection_string,
            retry_total=self.MAX_RETRIES
        )
        self.database = self.client.get_database_client(database_name)
        self.container: ContainerProxy = self.database.get_container_client(container_name)

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def put(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create or replace a post document

        Args:
            record: The post record, keyed by postId

        Returns:
            The stored record

        Raises:
            RetryableCosmosError: If the service throttled the request
        """
        body = PostDoc.from_record(record).model_dump()
        try:
            stored = self.container.upsert_item(body=body)
        except exceptions.CosmosHttpResponseError as e:
            _raise_if_retryable(e, "upsert", body["id"])
            raise
        log_info(None, "cosmos:posts:upsert", postId=body["id"])
        return PostDoc(**stored).to_record()

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get a post by ID

        Args:
            key: postId of the item to retrieve

        Returns:
            The record if found, None if not found
        """
        try:
            item = self.container.read_item(item=key, partition_key=key)
        except exceptions.CosmosResourceNotFoundError:
            logging.debug(f"Item not found: {key}")
            return None
        except exceptions.CosmosHttpResponseError as e:
            _raise_if_retryable(e, "read", key)
            raise
        return PostDoc(**item).to_record()

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def scan(self) -> List[Dict[str, Any]]:
        """
        List every post in the container

        No paging: the whole result set is drained into memory.
        """
        start_time = time.time()
        try:
            items = list(self.container.query_items(
                query="SELECT * FROM c",
                enable_cross_partition_query=True
            ))
        except exceptions.CosmosHttpResponseError as e:
            _raise_if_retryable(e, "scan")
            raise
        logging.debug(
            f"Retrieved {len(items)} items from container '{self.container_name}' "
            f"in {time.time() - start_time:.2f}s"
        )
        return [PostDoc(**item).to_record() for item in items]

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def update(self, key: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Patch attributes of an existing post

        Args:
            key: postId of the item to patch
            fields: Attribute names and their new values

        Returns:
            The patched record

        Raises:
            RecordNotFoundError: If the item does not exist
            RetryableCosmosError: If the service throttled the request
        """
        operations = [
            {"op": "set", "path": f"/{name}", "value": value}
            for name, value in fields.items()
        ]
        try:
            item = self.container.patch_item(
                item=key,
                partition_key=key,
                patch_operations=operations
            )
        except exceptions.CosmosResourceNotFoundError as e:
            raise RecordNotFoundError(key) from e
        except exceptions.CosmosHttpResponseError as e:
            _raise_if_retryable(e, "patch", key)
            raise
        log_info(None, "cosmos:posts:patch", postId=key, fields=sorted(fields))
        return PostDoc(**item).to_record()

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def delete(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Delete a post by ID

        Cosmos returns nothing from a delete, so the item is read first to
        hand back its prior attributes.

        Returns:
            The deleted record, or None if it did not exist
        """
        try:
            item = self.container.read_item(item=key, partition_key=key)
            self.container.delete_item(item=key, partition_key=key)
        except exceptions.CosmosResourceNotFoundError:
            logging.info(f"Item '{key}' not found during delete")
            return None
        except exceptions.CosmosHttpResponseError as e:
            _raise_if_retryable(e, "delete", key)
            raise
        log_info(None, "cosmos:posts:delete", postId=key)
        return PostDoc(**item).to_record()
