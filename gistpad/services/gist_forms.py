"""Create-gist and add-comment forms."""

from __future__ import annotations

from gistpad.auth.session_store import SessionStore
from gistpad.db.queries import comments as comment_queries
from gistpad.db.queries import gists as gist_queries
from gistpad.db.store import DocumentStore
from gistpad.services.error_messages import WRITE_MESSAGES
from gistpad.services.forms import FormController, FormError
from gistpad.utils.validators import CommentForm, GistForm


class CreateGistController(FormController):
    schema = GistForm
    messages = WRITE_MESSAGES
    default_message = "Failed to create gist. Please try again."
    success_message = "Gist created successfully!"
    success_ttl = 3.0

    def __init__(self, session_store: SessionStore, store: DocumentStore, **kwargs):
        super().__init__(**kwargs)
        self._session = session_store
        self._store = store
        self.created_id: str | None = None

    async def perform(self, form: GistForm) -> None:
        identity = self._session.identity
        if identity is None:
            raise FormError("You must be logged in to create a gist")
        self.created_id = await gist_queries.create_gist(self._store, form, identity.uid)


class CommentController(FormController):
    schema = CommentForm
    messages = WRITE_MESSAGES
    default_message = "Failed to post comment. Please try again."
    reset_on_success = True

    def __init__(self, session_store: SessionStore, store: DocumentStore, gist_id: str, **kwargs):
        super().__init__(**kwargs)
        self._session = session_store
        self._store = store
        self.gist_id = gist_id

    @property
    def can_submit(self) -> bool:
        return not self.state.is_submitting and bool(str(self.state.values.get("content", "")).strip())

    async def perform(self, form: CommentForm) -> None:
        identity = self._session.identity
        if identity is None:
            raise FormError("You must be logged in to comment")
        await comment_queries.add_comment(self._store, self.gist_id, identity, form.content)
