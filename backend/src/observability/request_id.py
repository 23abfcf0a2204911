"""Request ID propagation for log correlation.

The request ID lives in a context variable so every log line emitted
while serving a request, including inside the pipeline and dispatcher
coroutines, carries it.

An inbound X-Request-ID is reused only when it looks like an ID. Anything
else (including values a client might use to smuggle text into the logs)
is replaced with a fresh UUID.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

NO_REQUEST_ID = "no-request-id"

_ACCEPTABLE_ID = re.compile(r"^[A-Za-z0-9-]{8,64}$")

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def accept_request_id(header_value: Optional[str]) -> str:
    """Reuse a well-formed inbound request ID, otherwise mint one."""
    if header_value and _ACCEPTABLE_ID.match(header_value):
        return header_value
    return generate_request_id()


def get_request_id() -> str:
    return request_id_var.get() or NO_REQUEST_ID


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
