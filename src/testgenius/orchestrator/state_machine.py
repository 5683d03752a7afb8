"""
Pipeline transition table.

`next_stage` is a pure function of (current stage, event). Guards that
depend on the session's data (non-empty selection, chosen summary, ...) are
checked by the orchestrator before it asks for a transition.
"""

from __future__ import annotations

from testgenius.errors import PreconditionError

from .models import PipelineStage, StageEvent

S = PipelineStage
E = StageEvent

TRANSITIONS: dict[tuple[PipelineStage, StageEvent], PipelineStage] = {
    # Forward path
    (S.INITIAL, E.START_LISTING): S.FILES_LOADING,
    (S.FILES_LOADING, E.SUCCEED): S.FILES_LOADED,
    (S.FILES_LOADING, E.FAIL): S.ERROR,
    (S.FILES_LOADED, E.START_SUMMARIES): S.SUMMARIES_LOADING,
    (S.SUMMARIES_LOADING, E.SUCCEED): S.SUMMARIES_LOADED,
    (S.SUMMARIES_LOADING, E.FAIL): S.ERROR,
    (S.SUMMARIES_LOADED, E.START_CODE): S.CODE_LOADING,
    (S.CODE_LOADING, E.SUCCEED): S.CODE_LOADED,
    (S.CODE_LOADING, E.FAIL): S.ERROR,
    (S.CODE_LOADED, E.START_PUBLISH): S.PUBLISH_LOADING,
    (S.PUBLISH_LOADING, E.SUCCEED): S.PUBLISHED,
    (S.PUBLISH_LOADING, E.FAIL): S.ERROR,
    # Regenerate code for another summary or class name
    (S.CODE_LOADED, E.START_CODE): S.CODE_LOADING,
    # Explicit backward reset to the file list
    (S.ERROR, E.RESUME): S.FILES_LOADED,
    (S.SUMMARIES_LOADED, E.RESUME): S.FILES_LOADED,
    (S.CODE_LOADED, E.RESUME): S.FILES_LOADED,
    (S.PUBLISHED, E.RESUME): S.FILES_LOADED,
}

# Restart is accepted from every state
TRANSITIONS.update({(stage, E.RESTART): S.INITIAL for stage in PipelineStage})


def next_stage(stage: PipelineStage, event: StageEvent) -> PipelineStage:
    """
    Return the stage reached from `stage` on `event`.

    Raises:
        PreconditionError: If the pair is not a defined transition.
    """
    try:
        return TRANSITIONS[(stage, event)]
    except KeyError:
        raise PreconditionError(
            f"Cannot {event.value.replace('_', ' ')} while pipeline is {stage.value}"
        ) from None


def allowed_events(stage: PipelineStage) -> list[StageEvent]:
    """Events accepted in `stage`, in declaration order."""
    return [event for event in StageEvent if (stage, event) in TRANSITIONS]
