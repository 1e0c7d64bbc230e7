"""Exception hierarchy for list comprehension rewriting."""


class TransformError(Exception):
    """Base exception for comprehension rewriting errors.

    Provides dual messaging: a sanitized user-facing message and
    internal details for logging, so that raw source text only shows
    up where the caller asks for it.
    """

    def __init__(
        self,
        user_message: str,
        internal_details: str = "",
        wrapped: Exception | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details or user_message
        self.wrapped = wrapped

    def internal(self) -> str:
        return self.internal_details


class MalformedComprehensionError(TransformError):
    """Raised when the notation has no ``for`` clause or cannot be tokenized."""


class MalformedClauseError(TransformError):
    """Raised in strict mode when a clause segment does not match the clause grammar."""


class UnsupportedDepthError(TransformError):
    """Raised when the clause count is zero or exceeds the configured maximum."""

    def __init__(
        self,
        user_message: str,
        internal_details: str = "",
        wrapped: Exception | None = None,
        depth: int = 0,
    ) -> None:
        super().__init__(user_message, internal_details, wrapped)
        self.depth = depth


class ExpressionParseError(TransformError):
    """Raised when yield, iterable, condition or pattern text cannot be parsed."""


class InvalidBindingError(ExpressionParseError):
    """Raised when a plain loop variable is not a usable identifier."""


class UnsupportedDialectFeatureError(TransformError):
    """Raised when a feature is not supported by the output dialect."""


class UnsupportedExpressionError(TransformError):
    """Raised when an expression node cannot be printed or evaluated."""


class MaxOutputLengthExceededError(TransformError):
    """Raised when the printed output of one occurrence exceeds the limit."""


class EvaluationError(TransformError):
    """Raised when evaluating an expression fails at runtime."""


# Sanitized user-facing error message constants
ERR_MSG_NO_FOR_CLAUSE = "comprehension has no for clause"
ERR_MSG_EMPTY_YIELD = "comprehension has an empty yield expression"
ERR_MSG_UNBALANCED = "comprehension has unbalanced brackets"
ERR_MSG_UNTOKENIZABLE = "comprehension text cannot be tokenized"
ERR_MSG_MALFORMED_CLAUSE = "malformed comprehension clause"
ERR_MSG_NO_CLAUSES = "comprehension has no usable clauses"
ERR_MSG_TOO_MANY_CLAUSES = "comprehension nesting depth exceeded"
ERR_MSG_INVALID_EXPRESSION = "invalid expression"
ERR_MSG_INVALID_PATTERN = "invalid binding pattern"
ERR_MSG_INVALID_BINDING = "invalid loop variable"
ERR_MSG_UNSUPPORTED_EXPRESSION = "unsupported expression type"
ERR_MSG_DESTRUCTURING_UNSUPPORTED = "destructuring is not supported by this dialect"
ERR_MSG_OUTPUT_TOO_LONG = "maximum output length exceeded"
ERR_MSG_EVALUATION_FAILED = "expression evaluation failed"
