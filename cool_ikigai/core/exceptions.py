# cool_ikigai/core/exceptions.py
"""
Core exceptions - standardized error handling for Cool Ikigai.

This module defines all custom exceptions used by the dialogue engine,
the conversation sessions and the collaborator services.
"""

from typing import Optional, Dict, Any


class IkigaiBaseException(Exception):
    """Base exception for all Cool Ikigai errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class FlowError(IkigaiBaseException):
    """A dialogue step could not be handled"""

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.current_state = current_state

        if current_state:
            self.details['current_state'] = current_state

    def __str__(self) -> str:
        text = super().__str__()
        return f"{text} [step={self.current_state}]" if self.current_state else text


class NotActiveError(FlowError):
    """advance() was called while the Ikigai flow is not running"""

    def __init__(self, message: str = "Ikigai flow is not active", current_state: Optional[str] = None):
        super().__init__(message, current_state=current_state)


class TurnTakingError(IkigaiBaseException):
    """User input arrived while Bob is still speaking"""

    def __init__(
        self,
        message: str = "Bob is still speaking",
        session_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.session_id = session_id

        if session_id:
            self.details['session_id'] = session_id


class ValidationError(IkigaiBaseException):
    """Errors in input validation and data integrity"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize validation error.

        Args:
            message: Error description
            field: Field that failed validation
            value: Invalid value
            details: Additional validation context
        """
        super().__init__(message, details)
        self.field = field
        self.value = value

        if field:
            self.details['field'] = field
        if value is not None:
            self.details['value'] = str(value)


class AgentError(IkigaiBaseException):
    """Errors while an agent builds its messages"""

    def __init__(
        self,
        message: str,
        agent_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.agent_name = agent_name

        if agent_name:
            self.details['agent'] = agent_name


class ServiceError(IkigaiBaseException):
    """Errors in external service interactions"""

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize service error.

        Args:
            message: Error description
            service_name: Name of the failing service
            operation: Operation that failed
            details: Additional service context
        """
        super().__init__(message, details)
        self.service_name = service_name
        self.operation = operation

        if service_name:
            self.details['service'] = service_name
        if operation:
            self.details['operation'] = operation


class ConfigurationError(IkigaiBaseException):
    """Errors in system configuration and initialization"""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.component = component

        if component:
            self.details['component'] = component


class PromptError(IkigaiBaseException):
    """Errors in prompt management and template processing"""

    def __init__(
        self,
        message: str,
        prompt_type: Optional[str] = None,
        template_vars: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize prompt error.

        Args:
            message: Error description
            prompt_type: Type of prompt that failed
            template_vars: Variables used in template
            details: Additional prompt context
        """
        super().__init__(message, details)
        self.prompt_type = prompt_type
        self.template_vars = template_vars or {}

        if prompt_type:
            self.details['prompt_type'] = prompt_type
        if template_vars:
            self.details['template_vars'] = template_vars


class GPTServiceError(ServiceError):
    """Specific errors for chat completion calls"""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        original_error: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, service_name="GPT", details=details)
        self.model = model
        self.original_error = original_error

        if model:
            self.details['model'] = model
        if original_error is not None:
            self.details['error_type'] = type(original_error).__name__


class SpeechServiceError(ServiceError):
    """Text-to-speech synthesis or playback failed"""

    def __init__(
        self,
        message: str,
        voice: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, service_name="ElevenLabs", operation="synthesize", details=details)
        self.voice = voice
        self.status_code = status_code

        if voice:
            self.details['voice'] = voice
        if status_code is not None:
            self.details['status_code'] = status_code


class DocumentRenderError(ServiceError):
    """The summary document could not be rendered"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, service_name="DocumentRenderer", operation="render", details=details)


class SessionError(IkigaiBaseException):
    """Errors in session management and state handling"""

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.session_id = session_id

        if session_id:
            self.details['session_id'] = session_id
