class TaskError(Exception):
    """Base class for task store failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskError):
    """Malformed or missing input. Always a client fault."""

    status_code = 400


class NotFound(TaskError):
    status_code = 404

    def __init__(self, task_id: str):
        super().__init__("Task not found")
        self.task_id = task_id


class StorageError(TaskError):
    """
    Unexpected failure in a storage backend.

    ``connection_lost`` is set when the failure means the durable store can no
    longer be reached.
    """

    status_code = 500

    def __init__(self, message: str, connection_lost: bool = False):
        super().__init__(message)
        self.connection_lost = connection_lost
