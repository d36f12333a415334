import functools
import inspect
import time

from loguru import logger


def log_operation(func):
    """
    A decorator that logs coroutine entry, timing and exceptions.

    Features:
    - Prints function name and parameters before execution
    - Logs the elapsed time after successful execution
    - Logs exceptions with their elapsed time and re-raises them unchanged
    """

    sig = inspect.signature(func)

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        func_name = func.__qualname__

        bound_args = sig.bind(*args, **kwargs)
        bound_args.apply_defaults()
        params = {k: v for k, v in bound_args.arguments.items() if k != "self"}

        logger.info(f"Starting {func_name} with params: {params}")
        start = time.perf_counter()

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.error(
                f"{func_name} failed after {elapsed_ms:.0f}ms: "
                f"{type(e).__name__}: {e}"
            )
            raise

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{func_name} completed in {elapsed_ms:.0f}ms")
        return result

    return wrapper
