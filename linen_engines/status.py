"""
linen_engines.status -- Batch status state machine.

Responsibility:
    Declare the batch lifecycle as one explicit transition table and answer
    "may this batch move from A to B?".

Architecture position:
    Engines -- pure calculation layer.  Who may request a transition is an
    auth concern outside this module; the persisted current status is read
    by the service under a row lock before asking.

Invariants enforced:
    - Only the forward edges pickup -> washing -> completed -> delivered
      are legal.  No self-loops, no backward moves, delivered is terminal.
    - ``validate_transition`` never raises; an illegal or unknown status
      produces ``TransitionResult(is_valid=False, reason=...)``.

Failure modes:
    - ``require_transition`` raises InvalidTransitionError for callers
      that must abort.
"""

from __future__ import annotations

from dataclasses import dataclass

from linen_kernel.domain.status import BatchStatus
from linen_kernel.domain.workflow import Transition, Workflow
from linen_kernel.exceptions import InvalidTransitionError
from linen_kernel.logging_config import get_logger

logger = get_logger("engines.status")

BATCH_STATUS_WORKFLOW = Workflow(
    name="batch_status",
    description="Linen batch lifecycle from client pickup to delivery",
    initial_state=BatchStatus.PICKUP.value,
    states=tuple(s.value for s in BatchStatus),
    transitions=(
        Transition(BatchStatus.PICKUP.value, BatchStatus.WASHING.value, action="start_washing"),
        Transition(BatchStatus.WASHING.value, BatchStatus.COMPLETED.value, action="complete"),
        Transition(BatchStatus.COMPLETED.value, BatchStatus.DELIVERED.value, action="deliver"),
    ),
    terminal_states=(BatchStatus.DELIVERED.value,),
)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a transition check; ``reason`` is set when invalid."""

    from_status: str
    to_status: str
    is_valid: bool
    reason: str | None = None
    action: str | None = None

    def __bool__(self) -> bool:
        return self.is_valid


def _wire(value: object) -> str:
    if isinstance(value, BatchStatus):
        return value.value
    return str(value)


def validate_transition(
    from_status: BatchStatus | str,
    to_status: BatchStatus | str,
    workflow: Workflow = BATCH_STATUS_WORKFLOW,
) -> TransitionResult:
    """Check one requested move.  Never raises."""
    source = BatchStatus.parse(from_status)
    target = BatchStatus.parse(to_status)
    from_wire, to_wire = _wire(from_status), _wire(to_status)

    if source is None:
        return TransitionResult(from_wire, to_wire, False, f"Unknown status: {from_wire}")
    if target is None:
        return TransitionResult(from_wire, to_wire, False, f"Unknown status: {to_wire}")
    if source == target:
        return TransitionResult(
            source.value, target.value, False, f"Batch is already {source.value}"
        )
    if workflow.is_terminal(source.value):
        return TransitionResult(
            source.value,
            target.value,
            False,
            f"Cannot change status of a {source.value} batch",
        )

    transition = workflow.find_transition(source.value, target.value)
    if transition is None:
        allowed = ", ".join(t.to_state for t in workflow.transitions_from(source.value))
        return TransitionResult(
            source.value,
            target.value,
            False,
            f"Cannot transition from {source.value} to {target.value}; "
            f"allowed: {allowed}",
        )
    return TransitionResult(source.value, target.value, True, action=transition.action)


def allowed_transitions(
    status: BatchStatus | str,
    workflow: Workflow = BATCH_STATUS_WORKFLOW,
) -> tuple[BatchStatus, ...]:
    """Statuses reachable in one step; empty for terminal or unknown."""
    source = BatchStatus.parse(status)
    if source is None:
        return ()
    return tuple(BatchStatus(t.to_state) for t in workflow.transitions_from(source.value))


def next_status(
    status: BatchStatus | str,
    workflow: Workflow = BATCH_STATUS_WORKFLOW,
) -> BatchStatus | None:
    """The single forward step, or None when terminal."""
    allowed = allowed_transitions(status, workflow)
    return allowed[0] if allowed else None


def require_transition(
    from_status: BatchStatus | str,
    to_status: BatchStatus | str,
    workflow: Workflow = BATCH_STATUS_WORKFLOW,
) -> TransitionResult:
    """
    Like ``validate_transition`` but raises when the move is illegal.

    Raises:
        InvalidTransitionError: the move is not a sanctioned forward edge.
    """
    result = validate_transition(from_status, to_status, workflow)
    if not result.is_valid:
        logger.warning(
            "batch_status_transition_rejected",
            extra={
                "from_status": result.from_status,
                "to_status": result.to_status,
                "reason": result.reason,
            },
        )
        raise InvalidTransitionError(result.from_status, result.to_status, result.reason or "")
    return result
