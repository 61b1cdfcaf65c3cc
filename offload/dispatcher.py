"""
Task dispatcher: isolated execution contexts keyed by task family.

Each :class:`ExecutionContext` owns a single-worker executor (a separate
process by default), so tasks never share memory with the caller or with
other contexts.  Requests to one context queue up and run one at a time;
different contexts run in parallel.

Every submission gets its own correlation id and reply future, so
concurrent callers targeting the same family only ever see their own
result.  Contexts are created lazily, reused across tasks, and only torn
down by :meth:`TaskDispatcher.discard` or
:meth:`TaskDispatcher.terminate_all`.

Usage::

    from offload.dispatcher import OffloadConfig, TaskDispatcher

    with TaskDispatcher(OffloadConfig()) as dispatcher:
        text = asyncio.run(dispatcher.execute("extract", pdf_bytes))
"""

import asyncio
import logging
import multiprocessing
from concurrent.futures import (
    BrokenExecutor,
    Executor,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
)
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from offload.errors import InvalidArgumentError, OffloadError, TaskFailedError, UnavailableError
from offload.models import (
    ResultEnvelope,
    TaskDescriptor,
    TaskKind,
    TaskRequest,
    new_correlation_id,
)
from offload.worker import init_context, run_task

logger = logging.getLogger(__name__)

ISOLATION_MODES = ("process", "thread")


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class OffloadConfig:
    """
    Tuneable parameters for the dispatcher and its contexts.

    Attributes:
        isolation:       ``"process"`` (one worker process per context) or
                         ``"thread"`` (one worker thread per context; for
                         debugging, since PyMuPDF is not thread-safe across
                         parallel contexts).
        start_method:    multiprocessing start method (``None`` for the
                         platform default).
        log_level:       Logging level applied inside process contexts.
        show_progress:   Draw tqdm page progress bars for tasks built by
                         :meth:`TaskDispatcher.execute`.
        default_timeout: Seconds to wait for a reply before discarding the
                         context (``None`` waits indefinitely).
    """

    isolation: str = "process"
    start_method: Optional[str] = None
    log_level: int = logging.WARNING
    show_progress: bool = False
    default_timeout: Optional[float] = None

    def __post_init__(self):
        if self.isolation not in ISOLATION_MODES:
            raise ValueError(
                f"Unknown isolation '{self.isolation}'. Available: {list(ISOLATION_MODES)}"
            )


# ------------------------------------------------------------------
# Task routing
# ------------------------------------------------------------------

DEFAULT_FAMILY = "pdf"

# Task kind → family of the context that runs it
TASK_FAMILIES: Dict[TaskKind, str] = {
    TaskKind.EXTRACT: "pdf",
    TaskKind.EXTRACT_REGION: "pdf",
    TaskKind.SEARCH: "search",
    TaskKind.EXTRACT_ANNOTATIONS: "annotation",
    TaskKind.SAVE_ANNOTATIONS: "annotation",
    TaskKind.SUMMARIZE: "annotation",
    TaskKind.EDIT: "editor",
    TaskKind.CREATE: "editor",
}


def family_for(kind: Union[TaskKind, str]) -> str:
    """Default context family for a task kind (unknown kinds go to the default family)."""
    try:
        return TASK_FAMILIES[TaskKind.parse(kind)]
    except InvalidArgumentError:
        return DEFAULT_FAMILY


def _consume_result(future: "asyncio.Future") -> None:
    # Retrieve the outcome of replies nobody awaits any more
    if not future.cancelled():
        future.exception()


# ------------------------------------------------------------------
# Execution context
# ------------------------------------------------------------------


class ExecutionContext:
    """
    One isolated, long-lived worker for a task family.

    The worker's executor has a single slot, so submitted requests form a
    FIFO queue.  Each submission registers a pending reply under a fresh
    correlation id; the slot is resolved exactly once and then removed.
    """

    def __init__(self, name: str, config: OffloadConfig):
        self.name = name
        self.config = config
        self._pending: Dict[str, "asyncio.Future"] = {}
        self._closed = False
        self._executor = self._start_executor()

    def _start_executor(self) -> Executor:
        if self.config.isolation == "thread":
            return ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"context-{self.name}"
            )

        try:
            mp_context = (
                multiprocessing.get_context(self.config.start_method)
                if self.config.start_method
                else None
            )
            return ProcessPoolExecutor(
                max_workers=1,
                mp_context=mp_context,
                initializer=init_context,
                initargs=(self.config.log_level,),
            )
        except (OSError, ValueError) as e:
            raise UnavailableError(
                f"Cannot start execution context '{self.name}': {e}"
            ) from e

    @property
    def in_flight(self) -> int:
        """Number of submissions still waiting for their reply."""
        return len(self._pending)

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def submit(self, descriptor: TaskDescriptor) -> ResultEnvelope:
        """
        Send a private copy of *descriptor* to the worker and wait for its reply.

        Raises:
            UnavailableError: If the context is closed, its worker died, or
                              the request or reply could not be delivered
        """
        if self._closed:
            raise UnavailableError(f"Execution context '{self.name}' is closed")

        request = TaskRequest(
            correlation_id=new_correlation_id(),
            descriptor=descriptor.copy(),
        )

        try:
            future = self._executor.submit(run_task, request)
        except BrokenExecutor as e:
            self._retire_broken(e)
            raise UnavailableError(
                f"Execution context '{self.name}' cannot accept tasks: {e}"
            ) from e
        except (RuntimeError, OSError) as e:
            raise UnavailableError(
                f"Execution context '{self.name}' cannot accept tasks: {e}"
            ) from e

        reply_future = asyncio.wrap_future(future)
        self._pending[request.correlation_id] = reply_future
        logger.debug(
            "[%s] submitted %s as %s (%d in flight)",
            self.name,
            descriptor.kind_name,
            request.correlation_id,
            self.in_flight,
        )

        try:
            reply = await reply_future
        except asyncio.CancelledError:
            if future.cancelled():
                raise UnavailableError(
                    f"Execution context '{self.name}' was terminated before "
                    f"{descriptor.kind_name} ran"
                ) from None
            raise
        except BrokenExecutor as e:
            self._retire_broken(e)
            raise UnavailableError(
                f"Execution context '{self.name}' stopped while running "
                f"{descriptor.kind_name}: {e}"
            ) from e
        except Exception as e:
            raise UnavailableError(
                f"Execution context '{self.name}' failed to answer "
                f"{descriptor.kind_name}: {e}"
            ) from e
        finally:
            self._pending.pop(request.correlation_id, None)

        if reply.correlation_id != request.correlation_id:
            raise UnavailableError(
                f"Execution context '{self.name}' answered {reply.correlation_id} "
                f"for request {request.correlation_id}"
            )
        return reply.envelope

    def terminate(self, wait: bool = True) -> None:
        """
        Shut the worker down.  Queued requests are cancelled; a task that is
        already running finishes, but its reply is no longer delivered once
        the caller has stopped waiting.
        """
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.debug("[%s] context terminated", self.name)

    def _retire_broken(self, error: BaseException) -> None:
        # A broken pool never accepts work again
        logger.warning("[%s] worker stopped unexpectedly: %s", self.name, error)
        self.terminate(wait=False)

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"in_flight={self.in_flight}"
        return f"ExecutionContext('{self.name}', {self.config.isolation}, {state})"


# ------------------------------------------------------------------
# Dispatcher
# ------------------------------------------------------------------


class TaskDispatcher:
    """
    Caller-owned registry of execution contexts keyed by family name.

    Contexts are created on first use and reused for later tasks of the
    same family.  After :meth:`terminate_all`, new submissions recreate
    contexts on demand.
    """

    def __init__(self, config: Optional[OffloadConfig] = None):
        self.config = config or OffloadConfig()
        self._contexts: Dict[str, ExecutionContext] = {}

    # ------------------------------------------------------------------
    # Context lifecycle
    # ------------------------------------------------------------------

    def create(self, family: str) -> ExecutionContext:
        """Create a fresh context for *family*, replacing any existing one."""
        previous = self._contexts.pop(family, None)
        if previous is not None:
            previous.terminate(wait=False)

        context = ExecutionContext(family, self.config)
        self._contexts[family] = context
        logger.info("Started %s context '%s'", self.config.isolation, family)
        return context

    def get_or_create(self, family: str) -> ExecutionContext:
        """Return the live context for *family*, creating it if needed."""
        context = self._contexts.get(family)
        if context is None or context.is_closed:
            context = self.create(family)
        return context

    @property
    def families(self) -> List[str]:
        """Names of the families with a live context."""
        return sorted(self._contexts)

    def discard(self, family: str) -> None:
        """Drop the context for *family* without waiting for its current task."""
        context = self._contexts.pop(family, None)
        if context is not None:
            context.terminate(wait=False)
            logger.info("Discarded context '%s'", family)

    def terminate_all(self, wait: bool = True) -> None:
        """Tear down every context and clear the registry."""
        contexts = list(self._contexts.values())
        self._contexts.clear()
        for context in contexts:
            context.terminate(wait=wait)
        if contexts:
            logger.info("Terminated %d execution contexts", len(contexts))

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        family: str,
        descriptor: TaskDescriptor,
        timeout: Optional[float] = None,
    ) -> ResultEnvelope:
        """
        Run *descriptor* in the context for *family* and return its envelope.

        Never raises for task or dispatch failures: a closed or broken
        context, or a reply that misses the deadline, comes back as a
        failure envelope.  On timeout the context is discarded (its
        running task is not aborted) and the next submission starts a new
        one.

        Args:
            family:     Context family name (see :func:`family_for`)
            descriptor: Task to run; a private copy is sent to the context
            timeout:    Seconds to wait, overriding ``config.default_timeout``
        """
        if timeout is None:
            timeout = self.config.default_timeout

        try:
            context = self.get_or_create(family)
            if timeout is None:
                return await context.submit(descriptor)

            reply = asyncio.ensure_future(context.submit(descriptor))
            reply.add_done_callback(_consume_result)
            try:
                return await asyncio.wait_for(asyncio.shield(reply), timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Task %s on '%s' timed out after %.1fs; discarding context",
                    descriptor.kind_name,
                    family,
                    timeout,
                )
                if self._contexts.get(family) is context:
                    self.discard(family)
                return ResultEnvelope.failure(
                    f"Task {descriptor.kind_name} timed out after {timeout}s"
                )

        except OffloadError as e:
            logger.warning("Dispatch of %s to '%s' failed: %s", descriptor.kind_name, family, e)
            return ResultEnvelope.failure(str(e))

    async def execute(
        self,
        kind: Union[TaskKind, str],
        content: bytes = b"",
        family: Optional[str] = None,
        timeout: Optional[float] = None,
        **options: Any,
    ) -> Any:
        """
        Build a descriptor, run it, and return the result payload.

        Raises:
            TaskFailedError: If the task's envelope reports failure
        """
        descriptor = TaskDescriptor(
            kind=kind,
            content=content,
            options=options,
            show_progress=self.config.show_progress,
        )
        envelope = await self.submit(
            family or family_for(kind), descriptor, timeout=timeout
        )
        if not envelope.success:
            raise TaskFailedError(envelope.error or "Unknown error in PDF processing")
        return envelope.result

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.terminate_all()
        return False

    def __repr__(self) -> str:
        return f"TaskDispatcher(isolation={self.config.isolation}, families={self.families})"
