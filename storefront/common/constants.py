import contextvars
from typing import Optional

# Context variables for request and trace id
request_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)

# identity fields shortened in non-dev logs
MASKED_LOG_FIELDS = ("owner_id", "user_id", "public_id", "order_public_id")
