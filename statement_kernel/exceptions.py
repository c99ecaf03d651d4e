"""
Typed Exception Hierarchy for the Statement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the statement engine (HTTP handlers, batch jobs, tests) must be
able to react to failures without parsing message strings.  Every error
raised by the kernel or by the balance sheet module therefore:

  1. Has its own TYPED exception class (catch by type, not message)
  2. Carries a CODE class attribute (machine-readable, API-safe)
  3. Stores structured DATA as attributes (tenant, statement id, status...)

Example:
    try:
        service.generate(tenant_id, "2024-03-31", "monthly", requested_by)
    except DuplicatePeriodError as e:
        return {"error": e.code, "period_start": e.period_start}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StatementKernelError (base)
    |
    +-- MissingTenantError
    +-- InvalidDateError
    +-- InvalidPeriodTypeError
    |
    +-- StatementError
    |   +-- DuplicatePeriodError
    |   +-- StatementNotFoundError
    |   +-- ImmutableStateError
    |   +-- InvalidStatusTransitionError
    |   +-- AggregationError
    |   +-- NumberAllocationError
    |
    +-- AuditError
    |   +-- InvalidAuditActionError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Request         | MISSING_TENANT              | Tenant id absent or blank
                | INVALID_DATE                | Cutoff not parseable as a date
                | INVALID_PERIOD_TYPE         | Period type not monthly/quarterly/yearly
----------------|-----------------------------|-----------------------------------------
Statement       | DUPLICATE_PERIOD            | Snapshot already exists for the period
                | STATEMENT_NOT_FOUND         | No snapshot with that id for the tenant
                | IMMUTABLE_STATE             | Edit/delete of a non-draft snapshot
                | INVALID_STATUS_TRANSITION   | Status move not allowed by workflow
                | AGGREGATION_FAILED          | A top-level section could not be built
                | NUMBER_ALLOCATION_FAILED    | No free statement number within bounds
----------------|-----------------------------|-----------------------------------------
Audit           | INVALID_AUDIT_ACTION        | Unknown audit action
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE of an audit entry

Degraded leaf calculations are NOT exceptions: they are recorded as
DegradedCalculationWarning records (see statement_modules.balance_sheet.context)
and surfaced on the persisted snapshot.
"""


class StatementKernelError(Exception):
    """
    Base exception for all statement kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "STATEMENT_KERNEL_ERROR"


# Request validation


class MissingTenantError(StatementKernelError):
    """Operation invoked without a tenant id."""

    code: str = "MISSING_TENANT"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Tenant id is required for {operation}")


class InvalidDateError(StatementKernelError):
    """Statement cutoff could not be interpreted as a date."""

    code: str = "INVALID_DATE"

    def __init__(self, value: str, reason: str = "unparseable date"):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid statement date {value!r}: {reason}")


class InvalidPeriodTypeError(StatementKernelError):
    """Period type is not one of monthly, quarterly, yearly."""

    code: str = "INVALID_PERIOD_TYPE"

    def __init__(self, period_type: str):
        self.period_type = period_type
        super().__init__(f"Invalid period type: {period_type!r}")


# Statement lifecycle


class StatementError(StatementKernelError):
    """Base exception for balance sheet snapshot errors."""

    code: str = "STATEMENT_ERROR"


class DuplicatePeriodError(StatementError):
    """A snapshot already exists for this tenant, period type and period."""

    code: str = "DUPLICATE_PERIOD"

    def __init__(self, tenant_id: str, period_type: str, period_start: str):
        self.tenant_id = tenant_id
        self.period_type = period_type
        self.period_start = period_start
        super().__init__(
            f"Balance sheet already exists for {period_type} period "
            f"starting {period_start} (tenant {tenant_id})"
        )


class StatementNotFoundError(StatementError):
    """No snapshot with the given id exists for the tenant."""

    code: str = "STATEMENT_NOT_FOUND"

    def __init__(self, tenant_id: str, statement_id: str):
        self.tenant_id = tenant_id
        self.statement_id = statement_id
        super().__init__(f"Balance sheet not found: {statement_id}")


NotFoundError = StatementNotFoundError


class ImmutableStateError(StatementError):
    """Snapshot is no longer a draft and cannot be edited or deleted."""

    code: str = "IMMUTABLE_STATE"

    def __init__(self, statement_id: str, status: str, operation: str):
        self.statement_id = statement_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Only draft balance sheets can be {operation}d "
            f"(statement {statement_id} is {status})"
        )


class InvalidStatusTransitionError(StatementError):
    """Requested status change is not an allowed workflow transition."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, statement_id: str, from_status: str, to_status: str):
        self.statement_id = statement_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move balance sheet {statement_id} "
            f"from {from_status} to {to_status}"
        )


class AggregationError(StatementError):
    """A top-level statement section could not be assembled."""

    code: str = "AGGREGATION_FAILED"

    def __init__(self, section: str, reason: str):
        self.section = section
        self.reason = reason
        super().__init__(f"Failed to assemble {section}: {reason}")


class NumberAllocationError(StatementError):
    """No free statement number could be allocated."""

    code: str = "NUMBER_ALLOCATION_FAILED"

    def __init__(self, prefix: str, attempts: int):
        self.prefix = prefix
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a statement number with prefix {prefix} "
            f"after {attempts} attempts"
        )


# Audit


class AuditError(StatementKernelError):
    """Base exception for audit trail errors."""

    code: str = "AUDIT_ERROR"


class InvalidAuditActionError(AuditError):
    """Audit action is not part of the recognized vocabulary."""

    code: str = "INVALID_AUDIT_ACTION"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Invalid audit action: {action!r}")


# Immutability


class ImmutabilityError(StatementKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Audit entries are append-only from the moment they are flushed.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
