"""
Health checks and monitoring with Prometheus metrics
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
import time
import psutil
import structlog

from terve.services.cache import cache
from terve.db import engine
from terve.models import ExamAttempt, User, Word

logger = structlog.get_logger()

# Prometheus metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
TOTAL_USERS = Gauge('total_users', 'Total number of learners in database')
EXAMS_IN_PROGRESS = Gauge('exams_in_progress', 'Exams started but not yet submitted')
FLASHCARD_ANSWERS = Counter('flashcard_answers_total', 'Flashcard answers recorded', ['result'])
EXAMS_GRADED = Counter('exams_graded_total', 'Exams graded', ['level', 'passed'])
STORIES_GENERATED = Counter('stories_generated_total', 'Stories generated', ['level', 'length'])


class HealthChecker:
    def __init__(self):
        self.start_time = time.time()

    def check_database(self) -> dict:
        """Check database connectivity and catalog size"""
        try:
            with Session(engine) as session:
                words = session.exec(select(func.count()).select_from(Word)).one()
            return {
                "status": "healthy",
                "message": "Database connection successful",
                "catalog_words": words,
            }
        except SQLAlchemyError as e:
            logger.error("database_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "message": f"Database connection failed: {str(e)}",
            }

    def check_cache(self) -> dict:
        """Check cache round trip"""
        test_key = "health_check_test"
        cache.set(test_key, "test_value", expire=10)
        value = cache.get(test_key)
        cache.delete(test_key)

        if value == "test_value":
            return {
                "status": "healthy",
                "message": "Cache operations successful",
                "backend": "redis" if cache.redis_client is not None else "memory",
            }
        return {
            "status": "unhealthy",
            "message": "Cache operations failed",
        }

    def get_system_metrics(self) -> dict:
        """Get system resource metrics"""
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage('/')
        return {
            "cpu_percent": psutil.cpu_percent(interval=None),
            "memory_percent": memory.percent,
            "memory_available_gb": round(memory.available / (1024**3), 2),
            "disk_percent": disk.percent,
            "disk_free_gb": round(disk.free / (1024**3), 2),
            "uptime_seconds": time.time() - self.start_time,
        }

    def get_application_metrics(self) -> dict:
        """Get application-specific metrics"""
        try:
            with Session(engine) as session:
                total_users = session.exec(select(func.count()).select_from(User)).one()
                in_progress = session.exec(
                    select(func.count()).select_from(ExamAttempt).where(ExamAttempt.status == "in_progress")
                ).one()
        except SQLAlchemyError as e:
            logger.error("application_metrics_failed", error=str(e))
            return {"error": str(e)}

        TOTAL_USERS.set(total_users)
        EXAMS_IN_PROGRESS.set(in_progress)
        return {
            "total_users": total_users,
            "exams_in_progress": in_progress,
            "cache_available": cache.redis_client is not None,
        }

    def get_health_status(self) -> dict:
        """Get overall health status"""
        checks = {
            "database": self.check_database(),
            "cache": self.check_cache(),
        }

        unhealthy_checks = [name for name, check in checks.items() if check["status"] == "unhealthy"]
        overall_status = "healthy" if not unhealthy_checks else "unhealthy"

        return {
            "status": overall_status,
            "timestamp": time.time(),
            "checks": checks,
            "system_metrics": self.get_system_metrics(),
            "application_metrics": self.get_application_metrics(),
            "unhealthy_components": unhealthy_checks,
        }


# Global health checker instance
health_checker = HealthChecker()


def get_metrics():
    """Get Prometheus metrics"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
