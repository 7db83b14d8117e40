"""
Cooking Session Orchestrator.

Steps a user through a recipe by voice:

    IDLE --start--> NARRATING(step 0) --audio ok / failed--> READY
    READY --next--> NARRATING(step + 1), or FINISHED after the last step
    READY --previous--> NARRATING(step - 1); no-op at step 0
    READY --repeat--> NARRATING(same step)
    any --close--> IDLE

Narration is generated on demand for the step the user is on; nothing is
prefetched. A failed narration leaves the session READY without audio so the
user can keep reading, or press repeat.
"""
import logging
import uuid
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from chefai.ai.errors import ChefAIError, GenerationError
from chefai.ai.flows.cooking_assistant import (
    CookingAssistantInput,
    CookingAssistantReply,
    greeting_for,
    run_cooking_assistant,
)
from chefai.ai.flows.text_to_speech import generate_spoken_instructions
from chefai.ai.invoker import GenerationFlowInvoker
from chefai.ai.registry import validate_payload
from chefai.db.models import ChefModel, ConversationTurn, RecipeSpec

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    IDLE = "idle"
    NARRATING = "narrating"
    READY = "ready"
    FINISHED = "finished"


class InvalidTransitionError(Exception):
    """A user action arrived in a phase that does not accept it."""

    def __init__(self, action: str, phase: SessionPhase):
        super().__init__(f"Cannot {action} while the session is {phase.value}")
        self.action = action
        self.phase = phase


class CookingSessionState(ChefModel):
    """Snapshot of a cooking session, as returned to the client."""
    phase: SessionPhase = SessionPhase.IDLE
    recipe: Optional[RecipeSpec] = None
    current_step_index: int = Field(0, alias="currentStepIndex")
    is_speaking: bool = Field(False, alias="isSpeaking")
    last_audio_payload: Optional[str] = Field(None, alias="lastAudioPayload")
    last_error: Optional[str] = Field(None, alias="lastError")
    transcript: List[ConversationTurn] = []

    @property
    def current_step(self) -> Optional[str]:
        if self.recipe is None or self.phase in (SessionPhase.IDLE, SessionPhase.FINISHED):
            return None
        return self.recipe.instructions[self.current_step_index]


class CookingSession:
    """
    One user's guided cooking dialog. Owned by a single caller; not shared.
    """

    def __init__(self, invoker: GenerationFlowInvoker, session_id: Optional[str] = None):
        self.invoker = invoker
        self.session_id = session_id or str(uuid.uuid4())
        self.state = CookingSessionState()

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    def _require(self, action: str, *phases: SessionPhase) -> None:
        if self.state.phase not in phases:
            raise InvalidTransitionError(action, self.state.phase)

    def _last_step(self) -> int:
        return len(self.state.recipe.instructions) - 1

    async def _narrate(self, step_index: int) -> CookingSessionState:
        state = self.state
        state.phase = SessionPhase.NARRATING
        state.current_step_index = step_index
        state.is_speaking = False
        state.last_audio_payload = None
        state.last_error = None

        step_text = state.recipe.instructions[step_index]
        try:
            audio = await generate_spoken_instructions(self.invoker, step_text)
        except ChefAIError as exc:
            logger.debug("Narration failed for step %d: %s", step_index, exc.message)
            # The dialog may have been closed while the audio was in flight.
            if state is self.state:
                state.last_error = exc.message
                state.phase = SessionPhase.READY
            return self.state

        if state is self.state:
            state.last_audio_payload = audio.data_uri
            state.is_speaking = True
            state.phase = SessionPhase.READY
        return self.state

    async def start(self, recipe: RecipeSpec) -> CookingSessionState:
        """Open the dialog for `recipe` and narrate its first step."""
        self._require("start", SessionPhase.IDLE)
        self.state = CookingSessionState(
            recipe=recipe,
            transcript=[ConversationTurn(role="model", content=greeting_for(recipe.name))],
        )
        return await self._narrate(0)

    async def next(self) -> CookingSessionState:
        """Advance one step; past the last step the session is finished."""
        self._require("advance", SessionPhase.READY)
        if self.state.current_step_index >= self._last_step():
            self.state.phase = SessionPhase.FINISHED
            self.state.is_speaking = False
            self.state.last_audio_payload = None
            return self.state
        return await self._narrate(self.state.current_step_index + 1)

    async def previous(self) -> CookingSessionState:
        """Go back one step. At the first step nothing changes."""
        self._require("go back", SessionPhase.READY)
        if self.state.current_step_index == 0:
            return self.state
        return await self._narrate(self.state.current_step_index - 1)

    async def repeat(self) -> CookingSessionState:
        """Narrate the current step again."""
        self._require("repeat", SessionPhase.READY)
        return await self._narrate(self.state.current_step_index)

    async def ask(self, user_query: str) -> CookingAssistantReply:
        """
        Ask the assistant a free-form question about the recipe.

        The question and answer are appended to the transcript. A question
        that fails validation leaves the transcript untouched. If the text
        answer fails, an apology is recorded and the error propagates.
        """
        self._require("ask", SessionPhase.READY)
        state = self.state
        validate_payload(
            CookingAssistantInput,
            {"recipe": state.recipe, "history": state.transcript, "user_query": user_query},
        )
        state.transcript.append(ConversationTurn(role="user", content=user_query))
        try:
            reply = await run_cooking_assistant(self.invoker, state.recipe, state.transcript, user_query)
        except GenerationError:
            state.transcript.append(
                ConversationTurn(
                    role="model",
                    content="Lo siento, no pude procesar tu pregunta. Por favor, intenta de nuevo.",
                )
            )
            raise

        state.transcript.append(ConversationTurn(role="model", content=reply.response_text))
        state.last_audio_payload = reply.audio_data_uri
        state.is_speaking = reply.audio_data_uri is not None
        state.last_error = reply.audio_error
        return reply

    def close(self) -> CookingSessionState:
        """Dispose of the dialog state. A late narration result is ignored."""
        self.state = CookingSessionState()
        return self.state


class SessionStore:
    """In-process registry of open cooking sessions, keyed by session ID."""

    def __init__(self):
        self._sessions: Dict[str, CookingSession] = {}

    def open(self, invoker: GenerationFlowInvoker) -> CookingSession:
        session = CookingSession(invoker)
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Optional[CookingSession]:
        return self._sessions.get(session_id)

    def release_if_finished(self, session_id: str) -> bool:
        """Drop a session that has reached FINISHED. Its state is left as is."""
        session = self._sessions.get(session_id)
        if session is None or session.phase is not SessionPhase.FINISHED:
            return False
        del self._sessions[session_id]
        return True

    def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def __len__(self) -> int:
        return len(self._sessions)
