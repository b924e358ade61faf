"""Wait for a long-running Connectors operation to finish."""
import enum
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from ..domains.errors import ConnectionsError
from ..domains.models import Operation

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 10


class OperationState(enum.Enum):
    PENDING = "pending"
    DONE_SUCCESS = "done_success"
    DONE_ERROR = "done_error"
    FAILED_TO_QUERY = "failed_to_query"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


def wait_for_operation(get_operation: Callable[[str], Dict[str, Any]], operation_id: str,
                       interval: float = POLL_INTERVAL_SECONDS,
                       deadline: Optional[float] = None,
                       cancel: Optional[threading.Event] = None,
                       sleep: Callable[[float], None] = time.sleep,
                       clock: Callable[[], float] = time.monotonic) -> OperationState:
    """
    Poll an operation every interval seconds until it is done.

    The first query happens one interval after the call. With no deadline and
    no cancel event the loop runs until the server reports done, or until a
    query fails, which ends the wait without raising.

    Args:
        get_operation: Returns the operation resource for an operation id
        operation_id: Last segment of the operation name
        interval: Seconds between queries
        deadline: Give up after this many seconds
        cancel: Stop waiting once this event is set
        sleep: Sleep function, replaceable in tests
        clock: Monotonic clock used for the deadline

    Returns:
        The terminal OperationState
    """
    logger.info(f"Checking connection status for {operation_id} in {interval} seconds")
    started = clock()

    while True:
        if cancel is not None:
            if cancel.wait(interval):
                logger.info(f"Stopped waiting for {operation_id}")
                return OperationState.CANCELLED
        else:
            sleep(interval)

        try:
            operation = Operation.from_dict(get_operation(operation_id))
        except ConnectionsError as e:
            logger.debug(f"Unable to query operation {operation_id}: {e}")
            return OperationState.FAILED_TO_QUERY

        if operation.done:
            if operation.error is not None:
                logger.error(f"Connection completed with error: {operation.error.message}")
                return OperationState.DONE_ERROR
            logger.info("Connection completed successfully!")
            return OperationState.DONE_SUCCESS

        if deadline is not None and clock() - started >= deadline:
            logger.warning(f"Operation {operation_id} still running after {deadline} seconds, giving up")
            return OperationState.TIMED_OUT

        logger.info(f"Connection status is: {operation.done}. Waiting {interval} seconds.")
