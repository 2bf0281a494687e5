"""DynamoDB-backed blob store for the persisted event mapping."""
import logging
from typing import Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class DynamoDBBlobStore:
    """Blob store keeping one DynamoDB item per blob key."""

    KEY_ATTRIBUTE = 'blob_key'
    PAYLOAD_ATTRIBUTE = 'payload'

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table (hash key 'blob_key')
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBBlobStore for table: {table_name}")

    def read(self, key: str) -> Optional[str]:
        """
        Read a blob item.

        Args:
            key: Blob key

        Returns:
            Payload string or None if no item exists

        Raises:
            ClientError: if the table cannot be read
        """
        try:
            response = self.table.get_item(Key={self.KEY_ATTRIBUTE: key})
        except ClientError as e:
            logger.error(f"Error reading blob '{key}' from DynamoDB: {e}")
            raise

        item = response.get('Item')
        if not item:
            return None
        return item.get(self.PAYLOAD_ATTRIBUTE)

    def write(self, key: str, data: str) -> None:
        """
        Replace a blob item.

        Args:
            key: Blob key
            data: Payload string

        Raises:
            ClientError: if the item cannot be written
        """
        try:
            self.table.put_item(
                Item={
                    self.KEY_ATTRIBUTE: key,
                    self.PAYLOAD_ATTRIBUTE: data
                }
            )
        except ClientError as e:
            logger.error(f"Error writing blob '{key}' to DynamoDB: {e}")
            raise
