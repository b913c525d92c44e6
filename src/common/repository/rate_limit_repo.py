from botocore.exceptions import ClientError
import logging

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object


logger = logging.getLogger(__name__)


class RateLimitRepository:
    def __init__(self, table: Table):
        self.table = table

    def try_acquire(self, key: str, now_epoch: int, window_seconds: int) -> bool:
        """Claim the window for ``key`` unless an unexpired claim exists.

        Expired claims are overwritten in place; DynamoDB TTL reaps the rest.
        """
        expires_at = now_epoch + window_seconds
        try:
            self.table.put_item(
                Item={
                    "pk": f"RATE#{key}",
                    "sk": "WINDOW",
                    "expires_at": expires_at,
                    "ttl_attribute": expires_at,
                },
                ConditionExpression="attribute_not_exists(pk) OR expires_at <= :now",
                ExpressionAttributeValues={":now": now_epoch},
            )
        except ClientError as err:
            if (
                err.response.get("Error", {}).get("Code")
                == "ConditionalCheckFailedException"
            ):
                return False
            logger.error(f"Error acquiring rate limit window {key}: {err}")
            raise
        return True
