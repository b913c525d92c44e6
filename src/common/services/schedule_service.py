import boto3
from datetime import timezone, datetime
import json
import logging

logger = logging.getLogger(__name__)


class SchedulerService:
    """One-shot EventBridge schedules that drive time-based booking events."""

    def __init__(
        self,
        completion_lambda_arn: str,
        expiry_lambda_arn: str,
        role_arn: str,
        region="ap-south-1",
    ):
        self.client = boto3.client("scheduler", region_name=region)
        self.completion_lambda_arn = completion_lambda_arn
        self.expiry_lambda_arn = expiry_lambda_arn
        self.role_arn = role_arn

    def schedule_completion(self, booking_id: str, run_at: datetime):
        return self._schedule(
            f"complete-{booking_id}", self.completion_lambda_arn, booking_id, run_at
        )

    def schedule_payment_expiry(self, booking_id: str, run_at: datetime):
        return self._schedule(
            f"expire-{booking_id}", self.expiry_lambda_arn, booking_id, run_at
        )

    def _schedule(self, schedule_name: str, target_arn: str, booking_id: str, run_at: datetime):
        try:
            schedule_expression = self._to_at_expression(run_at)
        except ValueError as e:
            logger.error(f"Invalid time format: {e}")
            raise e

        schedule_params = {
            "Name": schedule_name,
            "ScheduleExpression": schedule_expression,
            "ScheduleExpressionTimezone": "UTC",
            "FlexibleTimeWindow": {"Mode": "OFF"},
            "Target": {
                "Arn": target_arn,
                "RoleArn": self.role_arn,
                "Input": json.dumps({"booking_id": booking_id}),
            },
            "ActionAfterCompletion": "DELETE",
        }

        try:
            self.client.create_schedule(**schedule_params, ClientToken=schedule_name)
            logger.info(f"Scheduled {schedule_name} at {schedule_expression}")
            return True

        except self.client.exceptions.ConflictException:
            logger.info(f"Schedule {schedule_name} exists. Updating target time.")
            self.client.update_schedule(**schedule_params)
            return True

        except Exception as e:
            logger.exception(f"Failed to create schedule {schedule_name}")
            raise e

    def _to_at_expression(self, dt: datetime) -> str:
        if isinstance(dt, str):
            dt = datetime.fromisoformat(dt)

        if dt.tzinfo is None:
            raise ValueError("run_at must be timezone-aware")

        utc_dt = dt.astimezone(timezone.utc)
        return f"at({utc_dt.strftime('%Y-%m-%dT%H:%M:%S')})"
