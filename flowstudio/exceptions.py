"""Flow Studio exception hierarchy.

Base exceptions for all application layers with correlation ID support.

Usage:
    from flowstudio.exceptions import ConflictError, TransientError

    try:
        await gateway.replace_steps(flow_id, steps)
    except ConflictError as e:
        logger.warning("Flow is no longer a draft", extra={"correlation_id": e.correlation_id})
"""

import uuid


class FlowStudioError(Exception):
    """Base exception for all Flow Studio errors.

    Carries a correlation_id for tracing errors across layers.
    """

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


class ValidationError(FlowStudioError):
    """A structurally invalid request (bad index, unknown id, bad attribute)."""

    pass


class StepNotFoundError(ValidationError):
    """The referenced step id is not in the working step list."""

    def __init__(self, step_id: str, **kwargs):
        self.step_id = step_id
        super().__init__(f"Step {step_id!r} not found", **kwargs)


class FlowNotFoundError(ValidationError):
    """The referenced flow does not exist in the store."""

    def __init__(self, flow_id: str, **kwargs):
        self.flow_id = flow_id
        super().__init__(f"Flow {flow_id!r} not found", **kwargs)


class TemplateNotFoundError(ValidationError):
    """The template catalog has no entry for the requested template id."""

    def __init__(self, template_id: str, **kwargs):
        self.template_id = template_id
        super().__init__(f"Template {template_id!r} not found", **kwargs)


class ConflictError(FlowStudioError):
    """A mutating call targeted a flow that is no longer editable.

    The caller must branch a new draft instead of retrying.
    """

    def __init__(
        self,
        message: str,
        *,
        flow_id: str | None = None,
        status: str | None = None,
        correlation_id: str | None = None,
    ):
        self.flow_id = flow_id
        self.status = status
        super().__init__(message, correlation_id=correlation_id)


class TransientError(FlowStudioError):
    """Network or store failure during load, save or deploy.

    Never retried automatically; the original error is chained as __cause__.
    """

    def __init__(self, message: str, *, operation: str | None = None, **kwargs):
        self.operation = operation
        super().__init__(message, **kwargs)


class ConfigurationError(FlowStudioError):
    """Errors from application configuration."""

    pass
