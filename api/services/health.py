"""
Health Check Service

Reports the status of the complaint API dependencies: MongoDB (required),
the notification broker and the report cache (both optional).
"""

import os
import time
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from opentelemetry import trace

from services.mongodb import MongoDBService
from services.redis import RedisService
from services.amqp import AMQPService

tracer = trace.get_tracer(__name__)

SERVICE_NAME = "ijwi-api"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthCheckService:
    """Service for dependency health monitoring."""

    def __init__(
        self,
        mongodb_service: MongoDBService,
        redis_service: Optional[RedisService] = None,
        amqp_service: Optional[AMQPService] = None
    ):
        self.mongodb_service = mongodb_service
        self.redis_service = redis_service
        self.amqp_service = amqp_service
        self.service_version = os.getenv('SERVICE_VERSION', '1.0.0')

    def get_health(self) -> Dict[str, Any]:
        """
        Get health status including all dependencies.

        The overall status is unhealthy when MongoDB is down and degraded when
        only an optional dependency is down.
        """
        with tracer.start_as_current_span("health.check") as span:
            start_time = time.time()

            mongodb_health = self._check_mongodb_health()
            amqp_health = self._check_amqp_health()
            redis_health = self._check_redis_health()

            overall_status = self._determine_overall_status(
                mongodb_health["status"],
                [amqp_health["status"], redis_health["status"]]
            )

            response_time_ms = round((time.time() - start_time) * 1000, 2)

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms,
                "health.mongodb_status": mongodb_health["status"],
                "health.amqp_status": amqp_health["status"],
                "health.redis_status": redis_health["status"]
            })

            return {
                "status": overall_status,
                "service": SERVICE_NAME,
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": _now(),
                "response_time_ms": response_time_ms,
                "dependencies": {
                    "mongodb": mongodb_health,
                    "amqp": amqp_health,
                    "redis": redis_health
                }
            }

    def _check_mongodb_health(self) -> Dict[str, Any]:
        with tracer.start_as_current_span("health.mongodb_check"):
            result = self.mongodb_service.health_check()
            result["last_check"] = _now()
            return result

    def _check_amqp_health(self) -> Dict[str, Any]:
        """Check broker connectivity."""
        if self.amqp_service is None:
            return {"status": "unavailable", "last_check": _now()}

        with tracer.start_as_current_span("health.amqp_check") as span:
            start_time = time.time()
            healthy = self.amqp_service.health_check()
            span.set_attribute("amqp.status", "healthy" if healthy else "unhealthy")

            return {
                "status": "healthy" if healthy else "unhealthy",
                "response_time_ms": round((time.time() - start_time) * 1000, 2),
                "last_check": _now()
            }

    def _check_redis_health(self) -> Dict[str, Any]:
        if self.redis_service is None:
            return {"status": "unavailable", "last_check": _now()}

        with tracer.start_as_current_span("health.redis_check"):
            result = self.redis_service.health_check()
            result["last_check"] = _now()
            return result

    @staticmethod
    def _determine_overall_status(required_status: str, optional_statuses: list) -> str:
        if required_status != "healthy":
            return "unhealthy"
        if all(status == "healthy" for status in optional_statuses):
            return "healthy"
        return "degraded"
