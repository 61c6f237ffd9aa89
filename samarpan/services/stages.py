"""
Non-fatal pipeline stages.

Commission and target bookkeeping never raise into the donor-facing
verification flow. Each stage returns a StageResult that is logged and
recorded on the donation.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class StageResult:
    stage: str
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return f"{type(self.error).__name__}: {self.error}"

    def as_record(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "error": self.error_message,
            **self.context,
        }


async def run_stage(stage: str, awaitable: Awaitable, **context) -> StageResult:
    """Await one pipeline stage, converting any exception into a failed result."""
    try:
        value = await awaitable
    except Exception as exc:
        logger.exception("⚠️ Stage '%s' failed (%s): %s", stage, _fmt(context), exc)
        return StageResult(stage=stage, ok=False, error=exc, context=context)
    return StageResult(stage=stage, ok=True, value=value, context=context)


def _fmt(context: Dict[str, Any]) -> str:
    return ", ".join(f"{k}={v}" for k, v in context.items())
