"""
Feedback DSL Exception Hierarchy

Contains the exception classes raised at the edges of the engine. The
render path itself never lets these escape; they mark internal parse
failures and loader/notification errors.
"""

from typing import Optional


class FeedbackDSLError(Exception):
    """
    Base exception for all feedback DSL operations.
    """
    pass


class TemplateError(FeedbackDSLError):
    """
    Exception for problems inside a feedback template.
    """
    pass


class ConditionSyntaxError(TemplateError):
    """
    Raised when an {{#if}} condition cannot be parsed.

    Carries the offending expression and, when known, the character
    offset inside it where parsing stopped.
    """

    def __init__(self, message: str, expression: str = "", position: Optional[int] = None):
        super().__init__(message)
        self.expression = expression
        self.position = position


class ResultLoadError(FeedbackDSLError):
    """
    Raised when enriched result JSON cannot be read or does not match
    the expected shape.
    """
    pass


class MessageTemplateError(FeedbackDSLError):
    """
    Exception for notification message templating.
    """
    pass


class MessageTemplateNotFoundError(MessageTemplateError):
    """
    Raised when a message template id is not registered.
    """
    pass


class MessageDataError(MessageTemplateError):
    """
    Raised when message data does not satisfy the template.
    """
    pass
