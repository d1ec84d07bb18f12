"""
DynamoDB utility functions for data access.
"""
import os
from typing import Dict, List, Optional, Any
import boto3
from boto3.dynamodb.conditions import Key

# Singleton instance
_dynamo_instance = None

def get_dynamo() -> 'DynamoDBClient':
    """
    Get or create singleton DynamoDB client instance.

    Repositories receive the client explicitly; handlers use this function to
    build it once per Lambda container.

    Example:
        dynamo = get_dynamo()
        repository = TrackerRepository(dynamo)

    Returns:
        DynamoDBClient: Singleton instance of DynamoDB client

    Raises:
        EnvironmentError: If TRACKER_TABLE_NAME environment variable is not set
    """
    global _dynamo_instance
    if _dynamo_instance is None:
        try:
            table_name = os.environ['TRACKER_TABLE_NAME']
        except KeyError:
            raise EnvironmentError(
                "TRACKER_TABLE_NAME environment variable not set. "
                "This variable must be set to the DynamoDB table name."
            )
        _dynamo_instance = DynamoDBClient(table_name)
    return _dynamo_instance

class DynamoDBClient:
    """Client for interacting with DynamoDB table."""

    def __init__(self, table_name: str):
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)

    def put_item(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """
        Put a single item into the table.

        Args:
            item: Dictionary containing item attributes

        Returns:
            Response from DynamoDB
        """
        return self.table.put_item(Item=item)

    def get_item(self, key: Dict[str, str]) -> Optional[Dict[str, Any]]:
        """
        Get a single item from the table.

        Args:
            key: Dictionary containing partition key and sort key

        Returns:
            Item if found, None otherwise
        """
        response = self.table.get_item(Key=key)
        return response.get('Item')

    def query_items(
        self,
        partition_key: str,
        partition_value: str,
        sort_key_condition: Optional[Key] = None
    ) -> List[Dict[str, Any]]:
        """
        Query items using partition key and optional sort key condition.

        Follows pagination so large partitions are returned in full.

        Args:
            partition_key: Name of partition key
            partition_value: Value of partition key
            sort_key_condition: Optional sort key condition

        Returns:
            List of matching items
        """
        key_condition = Key(partition_key).eq(partition_value)
        if sort_key_condition:
            key_condition = key_condition & sort_key_condition

        kwargs = {"KeyConditionExpression": key_condition}
        items: List[Dict[str, Any]] = []
        while True:
            response = self.table.query(**kwargs)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

def create_pk(user_id: str) -> str:
    """Create partition key from user ID."""
    return f"USER#{user_id}"

def create_cycle_sk(cycle_id: str) -> str:
    """Create sort key for a cycle under its user's partition."""
    return f"CYCLE#{cycle_id}"

def create_cycle_pk(cycle_id: str) -> str:
    """
    Create partition key holding a cycle's milestones.

    Args:
        cycle_id: Cycle identifier

    Returns:
        Partition key in format "CYCLE#{cycle_id}"
    """
    return f"CYCLE#{cycle_id}"

def create_milestone_sk(milestone_id: str) -> str:
    """Create sort key for a milestone under its cycle's partition."""
    return f"MILESTONE#{milestone_id}"

def create_reference_pk() -> str:
    """Partition key shared by all stage reference entries."""
    return "REFERENCE#STAGES"

def create_stage_sk(cycle_type: Optional[str], milestone_type: str) -> str:
    """
    Create sort key for a stage reference entry.

    Args:
        cycle_type: Cycle type the entry applies to, None for all types
        milestone_type: Milestone type identifier

    Returns:
        Sort key in format "STAGE#{cycle_type}#{milestone_type}"
    """
    return f"STAGE#{cycle_type or 'any'}#{milestone_type}"
