# File generated from its async equivalent, toolchat/aio/_loop.py
from typing import Callable
from contextlib import closing
import logging
from ._registry import FunctionRegistry
from ._transport import CompletionTransport
from .._common import (
    FUNCTION_CALL_AUTO,
    Conversation,
    FunctionCallPolicy,
    FunctionCallRequest,
    FunctionNotFoundError,
    InvocationError,
    RoundResult,
    RoundState,
    outcome_text,
)

__all__ = ["FunctionCallingLoop"]

logger = logging.getLogger(__name__)


class FunctionCallingLoop:
    """
    Sends the conversation and the registry's declarations to the model, runs the
    function the model asks for, and folds everything back into the conversation.

    Rounds on one loop run strictly one at a time.
    """

    def __init__(
        self,
        transport: CompletionTransport,
        registry: FunctionRegistry,
        conversation: Conversation | None = None,
    ):
        self.transport = transport
        self.registry = registry
        self.conversation = conversation if conversation is not None else Conversation()
        self.state = RoundState.IDLE

    def run_round(
        self, prompt: str, *, function_call: FunctionCallPolicy = FUNCTION_CALL_AUTO
    ) -> RoundResult:
        """
        One non-streaming round. A TransportError propagates, leaving the user
        message in the conversation.
        """
        self._begin_round(prompt, function_call)
        appended = 1
        try:
            response = self.transport.send_request(
                self.conversation, self.registry.list_declarations(), function_call
            )
            self.state = RoundState.RESPONSE_RECEIVED

            text = response.text or None
            if text:
                self.conversation.add_assistant_message(text)
                appended += 1

            result, error = None, None
            if response.function_call is not None:
                result, error = self._handle_function_call(response.function_call)
                if result:
                    appended += 1
        finally:
            self.state = RoundState.IDLE

        logger.debug("Round finished, %d turn(s) appended", appended)
        return RoundResult(
            prompt=prompt,
            text=text,
            function_call=response.function_call,
            function_result=result,
            error=error,
            turns_appended=appended,
        )

    def run_streaming_round(
        self,
        prompt: str,
        *,
        function_call: FunctionCallPolicy = FUNCTION_CALL_AUTO,
        on_text: Callable[[str], object] | None = None,
    ) -> RoundResult:
        """
        One streaming round. Text deltas go to `on_text` as they arrive; the
        assistant message is only added once the stream has been fully consumed.
        """
        self._begin_round(prompt, function_call)
        appended = 1
        try:
            stream = self.transport.send_streaming_request(
                self.conversation, self.registry.list_declarations(), function_call
            )
            chunks: list[str] = []
            # Closed right away if the round stops early, releasing the response.
            with closing(iter(stream)) as fragments:
                for fragment in fragments:
                    if fragment.text:
                        chunks.append(fragment.text)
                        if on_text is not None:
                            on_text(fragment.text)
            self.state = RoundState.RESPONSE_RECEIVED

            text = "".join(chunks)
            self.conversation.add_assistant_message(text)
            appended += 1

            call = stream.function_call()
            result, error = None, None
            if call is not None:
                result, error = self._handle_function_call(call)
                if result:
                    appended += 1
        finally:
            self.state = RoundState.IDLE

        logger.debug("Streaming round finished, %d turn(s) appended", appended)
        return RoundResult(
            prompt=prompt,
            text=text,
            function_call=call,
            function_result=result,
            error=error,
            turns_appended=appended,
        )

    def _begin_round(self, prompt: str, function_call: FunctionCallPolicy) -> None:
        if self.state is not RoundState.IDLE:
            raise RuntimeError(f"A round is already in progress ({self.state}).")
        logger.debug("Round started (function_call=%s): %s", function_call, prompt)
        self.conversation.add_user_message(prompt)
        self.state = RoundState.REQUEST_SENT

    def _handle_function_call(
        self, call: FunctionCallRequest
    ) -> tuple[str | None, FunctionNotFoundError | InvocationError | None]:
        """
        Run the requested function. Returns its normalized output (appended to the
        conversation when non-empty) or the error that stopped it.
        """
        self.state = RoundState.HANDLING_FUNCTION_CALL
        logger.info("Model called %s with %s", call.qualified_name, call.arguments)
        try:
            outcome = self.registry.run_function_call(call)
        except (FunctionNotFoundError, InvocationError) as e:
            logger.warning("Function call %s failed: %s", call.qualified_name, e)
            return None, e

        text = outcome_text(outcome)
        if not text:
            return None, None
        self.conversation.add_function_result(text, call.namespace, call.name)
        return text, None
