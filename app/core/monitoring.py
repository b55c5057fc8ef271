"""
Health check utilities
"""

import psutil
import time
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict

from app.application.models import QueueStats


class SystemHealth(BaseModel):
    """System health status model"""

    status: str
    timestamp: datetime
    uptime: float
    memory_usage: Dict[str, Any]
    cpu_usage: float
    queue: Dict[str, int]

    model_config = ConfigDict()


class HealthChecker:
    """Health checking with process metrics and queue counts"""

    def __init__(self):
        self.start_time = time.time()

    def get_memory_info(self) -> Dict[str, Any]:
        """Get memory usage information"""
        memory = psutil.virtual_memory()
        return {
            "total": memory.total,
            "available": memory.available,
            "percentage": memory.percent,
            "process_rss": psutil.Process().memory_info().rss,
        }

    def get_cpu_info(self) -> float:
        """CPU usage since the previous call (non-blocking)"""
        return psutil.cpu_percent(interval=None)

    @staticmethod
    def get_queue_info(stats: Optional[QueueStats]) -> Dict[str, int]:
        if stats is None:
            return {}
        return {
            "total": stats.total_items,
            "pending": stats.pending,
            "processing": stats.processing,
            "completed": stats.completed,
            "errors": stats.errors,
        }

    def get_system_health(self, queue_stats: Optional[QueueStats] = None) -> SystemHealth:
        """Get overall health status"""
        memory = self.get_memory_info()
        cpu = self.get_cpu_info()

        status = "healthy"
        if memory["percentage"] > 90 or cpu > 95:
            status = "unhealthy"
        elif memory["percentage"] > 80 or cpu > 80:
            status = "warning"

        return SystemHealth(
            status=status,
            timestamp=datetime.now(),
            uptime=time.time() - self.start_time,
            memory_usage=memory,
            cpu_usage=cpu,
            queue=self.get_queue_info(queue_stats),
        )


# Global health checker instance
health_checker = HealthChecker()
