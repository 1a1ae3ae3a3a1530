class WorkflowError(Exception):
    """Base class for certification workflow failures."""

    status_code = 400

    def to_dict(self):
        return {"error": str(self)}


class PreconditionFailed(WorkflowError):
    """A transition was attempted before its required prior state was reached."""

    status_code = 409

    def __init__(self, operation, field, required, actual=None, message=None):
        self.operation = operation
        self.field = field
        self.required = [getattr(r, "value", r) for r in required]
        self.actual = getattr(actual, "value", actual)
        if message is None:
            message = "{} requires {} in {} (found {})".format(
                operation, field, ", ".join(self.required), self.actual
            )
        super().__init__(message)

    def to_dict(self):
        return {
            "error": str(self),
            "operation": self.operation,
            "required": {self.field: self.required},
            "actual": self.actual,
        }


class NotFound(WorkflowError):
    """A requested workflow, course or user does not exist."""

    status_code = 404

    def __init__(self, user_id=None, level=None, message=None):
        self.user_id = user_id
        self.level = level
        if message is None:
            message = "Certification workflow not found for user {} level {}".format(user_id, level)
        super().__init__(message)


class CallbackUnmatched(WorkflowError):
    """A provider callback referenced a workflow that does not exist."""

    status_code = 200

    def __init__(self, reference, message=None):
        self.reference = reference
        super().__init__(message or "No certification workflow matches {}".format(reference))
