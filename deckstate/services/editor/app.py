"""Editor service API - editing sessions over a slide document."""

from uuid import uuid4

from fastapi import Depends, FastAPI, Header, HTTPException

from deckstate.services.editor.session import EditorSession
from deckstate.services.persistence.drivers import RemoteStore, create_remote_store
from deckstate.shared.enums import FieldKey
from deckstate.shared.errors import IdentityRequired
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import (
    AssistantPatchRequest,
    CallerIdentity,
    CommentRequest,
    ContentChangeRequest,
    FieldFocusRequest,
    FieldRecordUpdateRequest,
    MoveSlideRequest,
    OpenSessionRequest,
    SaveRequest,
    SaveVersionRequest,
    StatusRequest,
    ThemeRequest,
)
from deckstate.shared.response_models import APIResponse, HealthResponse

logger = setup_logging("editor-service")


class SessionRegistry:
    """Open editing sessions, keyed by session id, sharing one remote store."""

    def __init__(self, remote: RemoteStore | None = None) -> None:
        self._remote = remote
        self.sessions: dict[str, EditorSession] = {}

    @property
    def remote(self) -> RemoteStore:
        if self._remote is None:
            self._remote = create_remote_store()
        return self._remote

    @remote.setter
    def remote(self, value: RemoteStore) -> None:
        self._remote = value

    def get(self, session_id: str) -> EditorSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
        return session


registry = SessionRegistry()


def get_registry() -> SessionRegistry:
    return registry


def get_caller(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> CallerIdentity | None:
    """Caller identity as forwarded by the authenticating gateway."""
    if not x_user_id:
        return None
    return CallerIdentity(user_id=x_user_id, email=x_user_email)


def bind_session(
    session_id: str,
    caller: CallerIdentity | None = Depends(get_caller),
    sessions: SessionRegistry = Depends(get_registry),
) -> EditorSession:
    session = sessions.get(session_id)
    if caller is not None:
        session.context.caller = caller
    return session


def document_payload(session: EditorSession) -> dict:
    status = session.notifier.current()
    return {
        "mode": "remote" if session.is_remote else "local",
        "document": session.current_document().model_dump(mode="json"),
        "can_undo": session.store.history.can_undo,
        "can_redo": session.store.history.can_redo,
        "status_message": status.model_dump(mode="json") if status else None,
    }


app = FastAPI(
    title="Editor Service",
    description="Slide document state, undo/redo history and version snapshots",
    version="1.0.0",
)


@app.get("/health", response_model=HealthResponse)
async def health_check(sessions: SessionRegistry = Depends(get_registry)) -> HealthResponse:
    return HealthResponse(status="healthy", service="editor", remote_store=sessions.remote.name)


@app.post("/sessions", response_model=APIResponse)
async def open_session(
    request: OpenSessionRequest,
    caller: CallerIdentity | None = Depends(get_caller),
    sessions: SessionRegistry = Depends(get_registry),
) -> APIResponse:
    """Open an editing session. Without a presentation id the session stores slides locally."""
    session = EditorSession(
        presentation_id=request.presentation_id,
        caller=caller,
        remote=sessions.remote if request.presentation_id else None,
    )
    session.context.language = request.language
    if not await session.open(select_slide_id=request.select_slide_id):
        raise HTTPException(status_code=502, detail="Failed to load presentation")

    session_id = uuid4().hex
    sessions.sessions[session_id] = session
    logger.info(f"Opened session {session_id} for {session.presentation_id}")
    return APIResponse(message="Session opened", data={"session_id": session_id, **document_payload(session)})


@app.get("/sessions/{session_id}", response_model=APIResponse)
async def get_document(session: EditorSession = Depends(bind_session)) -> APIResponse:
    return APIResponse(data=document_payload(session))


@app.delete("/sessions/{session_id}", response_model=APIResponse)
async def close_session(session_id: str, sessions: SessionRegistry = Depends(get_registry)) -> APIResponse:
    session = sessions.get(session_id)
    await session.close()
    del sessions.sessions[session_id]
    return APIResponse(message="Session closed")


# editing surface


@app.post("/sessions/{session_id}/content", response_model=APIResponse)
async def change_content(
    request: ContentChangeRequest, session: EditorSession = Depends(bind_session)
) -> APIResponse:
    changed = session.on_content_changed(request.field, request.content, request.box_id, request.slide_id)
    return APIResponse(message="Content updated" if changed else "No change", data=document_payload(session))


@app.post("/sessions/{session_id}/focus", response_model=APIResponse)
async def focus_field(request: FieldFocusRequest, session: EditorSession = Depends(bind_session)) -> APIResponse:
    session.on_field_focused(request.field, request.box_id)
    return APIResponse(message="Field focused")


@app.post("/sessions/{session_id}/blur", response_model=APIResponse)
async def blur_field(request: FieldFocusRequest, session: EditorSession = Depends(bind_session)) -> APIResponse:
    session.on_field_blurred(request.field, request.box_id)
    return APIResponse(message="Field blurred")


@app.patch("/sessions/{session_id}/slides/{slide_id}/{record}", response_model=APIResponse)
async def update_field_record(
    slide_id: str,
    record: str,
    request: FieldRecordUpdateRequest,
    session: EditorSession = Depends(bind_session),
) -> APIResponse:
    """Shallow-merge ``values`` onto a field's style, position or formatting record."""
    if request.field is FieldKey.TEXT_BOX and not request.box_id:
        raise HTTPException(status_code=400, detail="box_id is required for text_box fields")
    if record == "style":
        changed = session.update_style(slide_id, request.field, request.values, request.box_id)
    elif record == "position":
        changed = session.update_position(slide_id, request.field, request.values, request.box_id)
    elif record == "formatting":
        changed = session.update_formatting(slide_id, request.field, request.values, request.box_id)
    else:
        raise HTTPException(status_code=404, detail=f"Unknown record type '{record}'")
    if not changed:
        raise HTTPException(status_code=400, detail=f"Could not update {record} for slide {slide_id}")
    return APIResponse(message=f"{record.capitalize()} updated", data=document_payload(session))


@app.post("/sessions/{session_id}/theme", response_model=APIResponse)
async def set_theme(request: ThemeRequest, session: EditorSession = Depends(bind_session)) -> APIResponse:
    changed = session.set_theme(request.theme, request.slide_id)
    return APIResponse(message="Theme updated" if changed else "No change", data=document_payload(session))


# structure


@app.post("/sessions/{session_id}/slides", response_model=APIResponse)
async def add_slide(session: EditorSession = Depends(bind_session)) -> APIResponse:
    slide = session.add_slide()
    return APIResponse(message=f"Added slide {slide.id}", data=document_payload(session))


@app.delete("/sessions/{session_id}/slides/{slide_id}", response_model=APIResponse)
async def delete_slide(slide_id: str, session: EditorSession = Depends(bind_session)) -> APIResponse:
    deleted = session.delete_slide(slide_id)
    return APIResponse(
        success=deleted,
        message="Slide deleted" if deleted else "At least one slide must remain in the presentation.",
        data=document_payload(session),
    )


@app.post("/sessions/{session_id}/slides/{slide_id}/select", response_model=APIResponse)
async def select_slide(slide_id: str, session: EditorSession = Depends(bind_session)) -> APIResponse:
    if not session.select_slide(slide_id):
        raise HTTPException(status_code=404, detail=f"Slide {slide_id} not found")
    return APIResponse(message="Slide selected", data=document_payload(session))


@app.post("/sessions/{session_id}/move", response_model=APIResponse)
async def move_slide(request: MoveSlideRequest, session: EditorSession = Depends(bind_session)) -> APIResponse:
    moved = session.move_slide(request.direction)
    return APIResponse(success=moved, message="Slide moved" if moved else "No change", data=document_payload(session))


@app.post("/sessions/{session_id}/undo", response_model=APIResponse)
async def undo(session: EditorSession = Depends(bind_session)) -> APIResponse:
    done = session.undo()
    return APIResponse(success=done, message="Undone" if done else "Nothing to undo", data=document_payload(session))


@app.post("/sessions/{session_id}/redo", response_model=APIResponse)
async def redo(session: EditorSession = Depends(bind_session)) -> APIResponse:
    done = session.redo()
    return APIResponse(success=done, message="Redone" if done else "Nothing to redo", data=document_payload(session))


# persistence


@app.post("/sessions/{session_id}/save", response_model=APIResponse)
async def save_document(request: SaveRequest, session: EditorSession = Depends(bind_session)) -> APIResponse:
    if request.title:
        session.set_title(request.title)
    try:
        saved = await session.save(is_shared=request.is_shared)
    except IdentityRequired as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    if not saved:
        raise HTTPException(status_code=502, detail="Failed to save presentation")
    return APIResponse(message="Presentation saved", data=document_payload(session))


@app.post("/sessions/{session_id}/status", response_model=APIResponse)
async def set_status(request: StatusRequest, session: EditorSession = Depends(bind_session)) -> APIResponse:
    try:
        updated = await session.set_status(request.status)
    except IdentityRequired as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    if not updated:
        raise HTTPException(status_code=502, detail="Failed to update presentation status")
    return APIResponse(message=f"Status set to {request.status.value}", data=document_payload(session))


@app.get("/sessions/{session_id}/status-message", response_model=APIResponse)
async def get_status_message(session: EditorSession = Depends(bind_session)) -> APIResponse:
    status = session.notifier.current()
    return APIResponse(data={"status_message": status.model_dump(mode="json") if status else None})


# versions


@app.get("/sessions/{session_id}/versions", response_model=APIResponse)
async def list_versions(session: EditorSession = Depends(bind_session)) -> APIResponse:
    versions = await session.list_versions()
    return APIResponse(data={"versions": [version.model_dump(mode="json") for version in versions]})


@app.post("/sessions/{session_id}/versions", response_model=APIResponse)
async def save_version(request: SaveVersionRequest, session: EditorSession = Depends(bind_session)) -> APIResponse:
    try:
        version_id = await session.save_version(request.summary)
    except IdentityRequired as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    if version_id is None:
        raise HTTPException(status_code=409, detail="Version could not be saved")
    return APIResponse(message="Version saved", data={"version_id": version_id})


@app.post("/sessions/{session_id}/versions/{version_id}/restore", response_model=APIResponse)
async def restore_version(version_id: str, session: EditorSession = Depends(bind_session)) -> APIResponse:
    restored = await session.restore_version(version_id)
    if not restored:
        raise HTTPException(status_code=409, detail=f"Version {version_id} could not be restored")
    return APIResponse(message="Version restored", data=document_payload(session))


# comments


@app.get("/sessions/{session_id}/comments", response_model=APIResponse)
async def list_comments(session: EditorSession = Depends(bind_session)) -> APIResponse:
    comments = await session.list_comments()
    return APIResponse(data={"comments": [comment.model_dump(mode="json") for comment in comments]})


@app.post("/sessions/{session_id}/comments", response_model=APIResponse)
async def add_comment(request: CommentRequest, session: EditorSession = Depends(bind_session)) -> APIResponse:
    try:
        comment_id = await session.add_comment(request.message)
    except IdentityRequired as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    if comment_id is None:
        raise HTTPException(status_code=409, detail="Comment could not be posted")
    return APIResponse(message="Comment posted", data={"comment_id": comment_id})


# AI assistant


@app.get("/sessions/{session_id}/assistant", response_model=APIResponse)
async def assistant_view(session: EditorSession = Depends(bind_session)) -> APIResponse:
    view = session.assistant_view()
    return APIResponse(
        data={
            "slide": view.model_dump(mode="json") if view else None,
            "slides": [item.model_dump(mode="json") for item in session.assistant_document_view()],
        }
    )


@app.post("/sessions/{session_id}/assistant/patch", response_model=APIResponse)
async def apply_assistant_patch(
    request: AssistantPatchRequest, session: EditorSession = Depends(bind_session)
) -> APIResponse:
    changed = session.apply_assistant_patch(request.patch, request.slide_id)
    return APIResponse(message="Patch applied" if changed else "No change", data=document_payload(session))
