"""DynamoDB repository for customer sessions."""

from __future__ import annotations

import json
import time
from typing import Any, Dict

import boto3
from botocore.exceptions import ClientError

LAST_REPLY_ATTR = "last_reply_timestamp"


class SessionStore:
    """Session documents keyed by session id, expired through a ``ttl`` attribute.

    ``last_reply_timestamp`` lives in its own attribute so the flood check can
    be a single conditional write.
    """

    def __init__(self, table_name: str, ttl_seconds: int = 86400, table=None):
        self.table = table if table is not None else boto3.resource("dynamodb").Table(table_name)
        self.ttl_seconds = ttl_seconds

    def _ttl(self) -> int:
        return int(time.time()) + self.ttl_seconds

    def load(self, session_id: str) -> Dict[str, Any]:
        resp = self.table.get_item(Key={"session_id": session_id})
        item = resp.get("Item")
        if not item:
            return {}
        data = json.loads(item.get("data") or "{}")
        if LAST_REPLY_ATTR in item:
            data[LAST_REPLY_ATTR] = int(item[LAST_REPLY_ATTR])
        return data

    def save(self, session_id: str, data: Dict[str, Any]) -> None:
        payload = {k: v for k, v in data.items() if k != LAST_REPLY_ATTR}
        self.table.update_item(
            Key={"session_id": session_id},
            UpdateExpression="SET #d = :d, #ttl = :ttl",
            ExpressionAttributeNames={"#d": "data", "#ttl": "ttl"},
            ExpressionAttributeValues={":d": json.dumps(payload), ":ttl": self._ttl()},
        )

    def claim_reply_slot(self, session_id: str, now: int, min_interval: int) -> bool:
        """Record ``now`` unless the previous reply is younger than ``min_interval``."""
        try:
            self.table.update_item(
                Key={"session_id": session_id},
                UpdateExpression="SET #lr = :now, #ttl = :ttl",
                ConditionExpression="attribute_not_exists(#lr) OR #lr <= :threshold",
                ExpressionAttributeNames={"#lr": LAST_REPLY_ATTR, "#ttl": "ttl"},
                ExpressionAttributeValues={
                    ":now": now,
                    ":threshold": now - min_interval,
                    ":ttl": self._ttl(),
                },
            )
            return True
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return False
            raise

    def delete(self, session_id: str) -> None:
        self.table.delete_item(Key={"session_id": session_id})
