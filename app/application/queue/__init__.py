from .controller import BatchQueueController

__all__ = ["BatchQueueController"]
