from devc.runtime.runtime import (
    STDERR,
    STDOUT,
    ContainerRuntimeClient,
    ExecStream,
    RuntimeProvider,
    detect_provider,
    get_runtime_client,
)

__all__ = [
    "STDERR",
    "STDOUT",
    "ContainerRuntimeClient",
    "ExecStream",
    "RuntimeProvider",
    "detect_provider",
    "get_runtime_client",
]
