"""
Balance Sheet Workflows.

State machine for the statement review process.  A snapshot is created as
a draft; only a draft can be edited or deleted.  Moves are one-way: a
rejection is recorded against a statement under review without sending it
back to draft, so nothing past draft ever becomes editable again.
"""

from dataclasses import dataclass

from statement_kernel.logging_config import get_logger
from statement_kernel.models.statement import AuditAction, StatementStatus

logger = get_logger("modules.balance_sheet.workflows")


@dataclass(frozen=True)
class Transition:
    """A valid state transition."""
    from_state: str
    to_state: str
    action: str
    audit_action: str = AuditAction.STATUS_CHANGED.value


@dataclass(frozen=True)
class Workflow:
    """A state machine definition."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]

    def transition_for(self, from_state: str, to_state: str) -> Transition | None:
        for transition in self.transitions:
            if transition.from_state == from_state and transition.to_state == to_state:
                return transition
        return None

    def is_allowed(self, from_state: str, to_state: str) -> bool:
        return self.transition_for(from_state, to_state) is not None

    def targets(self, from_state: str) -> tuple[str, ...]:
        return tuple(t.to_state for t in self.transitions if t.from_state == from_state)


# -----------------------------------------------------------------------------
# Review Workflow
# -----------------------------------------------------------------------------

_DRAFT = StatementStatus.DRAFT.value
_REVIEW = StatementStatus.REVIEW.value
_APPROVED = StatementStatus.APPROVED.value
_FINAL = StatementStatus.FINAL.value

# Statuses in which a reviewer may record a rejection.
REJECTABLE_STATES = (_REVIEW,)

STATEMENT_REVIEW_WORKFLOW = Workflow(
    name="balance_sheet_review",
    description="Balance sheet draft, review and sign-off",
    initial_state=_DRAFT,
    states=(_DRAFT, _REVIEW, _APPROVED, _FINAL),
    transitions=(
        Transition(_DRAFT, _REVIEW, action="submit"),
        Transition(
            _DRAFT, _APPROVED, action="approve", audit_action=AuditAction.APPROVED.value
        ),
        Transition(
            _REVIEW, _APPROVED, action="approve", audit_action=AuditAction.APPROVED.value
        ),
        Transition(_APPROVED, _FINAL, action="finalize"),
    ),
)

logger.debug(
    "balance_sheet_workflow_registered",
    extra={
        "workflow_name": STATEMENT_REVIEW_WORKFLOW.name,
        "state_count": len(STATEMENT_REVIEW_WORKFLOW.states),
        "transition_count": len(STATEMENT_REVIEW_WORKFLOW.transitions),
        "initial_state": STATEMENT_REVIEW_WORKFLOW.initial_state,
    },
)
