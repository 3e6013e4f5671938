"""Page view models.

A page exists only while its route guard renders it. ``mount()`` starts any
loads or subscriptions and ``unmount()`` stops them; results that arrive after
``unmount()`` (or after the route parameters changed) are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Coroutine

from gistpad.db.queries import gists as gist_queries
from gistpad.exceptions import DocumentStoreError, NotFoundError
from gistpad.models.gist import Gist
from gistpad.services.auth_forms import GoogleSignInController, LoginController, RegistrationController
from gistpad.services.forms import FormController
from gistpad.services.gist_forms import CommentController, CreateGistController
from gistpad.services.live_comments import CommentThreadSync
from gistpad.ui.context import AppContext
from gistpad.ui.render import render_template
from gistpad.utils.languages import extension, highlight_language

logger = logging.getLogger(__name__)


class Page:
    template = ""
    title = ""

    def __init__(
        self,
        ctx: AppContext,
        params: dict[str, str] | None = None,
        on_change: Callable[[], None] | None = None,
    ):
        self.ctx = ctx
        self.params = dict(params or {})
        self._on_change = on_change
        self._tasks: set[asyncio.Task] = set()
        self.mounted = False

    def mount(self) -> None:
        self.mounted = True

    def unmount(self) -> None:
        self.mounted = False
        for task in self._tasks:
            task.cancel()

    def update_params(self, params: dict[str, str]) -> None:
        self.params = dict(params)

    def view(self) -> dict:
        return {"title": self.title, "session": self.ctx.session_store.session}

    def render(self) -> str:
        return render_template(self.template, **self.view())

    async def settled(self) -> None:
        """Wait for the loads started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _changed(self, *_args) -> None:
        if self.mounted and self._on_change:
            self._on_change()


class FormPage(Page):
    """Page wrapping one form controller built in ``make_form``."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.form: FormController | None = None

    def make_form(self) -> FormController:
        raise NotImplementedError

    def mount(self) -> None:
        super().mount()
        self.form = self.make_form()

    def unmount(self) -> None:
        super().unmount()
        if self.form is not None:
            self.form.dispose()

    def view(self) -> dict:
        view = super().view()
        view["form"] = self.form.state if self.form else None
        return view


class LoginPage(FormPage):
    template = "login.html"
    title = "Sign in"

    def mount(self) -> None:
        super().mount()
        self.google = GoogleSignInController(
            self.ctx.session_store, self.ctx.provider, self.ctx.store, on_change=self._changed
        )

    def unmount(self) -> None:
        super().unmount()
        self.google.dispose()

    def make_form(self) -> FormController:
        return LoginController(self.ctx.session_store, self.ctx.provider, self.ctx.store, on_change=self._changed)

    def view(self) -> dict:
        view = super().view()
        view["google"] = self.google.state
        return view


class RegisterPage(FormPage):
    template = "register.html"
    title = "Create your account"

    def make_form(self) -> FormController:
        return RegistrationController(
            self.ctx.session_store, self.ctx.provider, self.ctx.store, on_change=self._changed
        )


class HomePage(Page):
    template = "home.html"
    title = "Welcome to Gistpad"


class CreateGistPage(FormPage):
    template = "create.html"
    title = "Create a new gist"

    def make_form(self) -> FormController:
        return CreateGistController(self.ctx.session_store, self.ctx.store, on_change=self._changed)

    def view(self) -> dict:
        view = super().view()
        filename = str(self.form.state.values.get("filename", "")) if self.form else ""
        view["language"] = highlight_language(filename)
        view["has_extension"] = bool(extension(filename))
        return view


class GistsPage(Page):
    template = "gists.html"
    title = "Your gists"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gists: list[Gist] = []
        self.loading = True
        self.error: str | None = None

    def mount(self) -> None:
        super().mount()
        identity = self.ctx.session_store.identity
        if identity is None:
            self.loading = False
            return
        self._spawn(self._load(identity.uid))

    async def _load(self, uid: str) -> None:
        gists: list[Gist] = []
        error = None
        try:
            gists = await gist_queries.list_gists_by_user(self.ctx.store, uid)
        except DocumentStoreError as e:
            logger.error("Error fetching gists for %s: %s", uid, e)
            error = "Failed to load gists"
        if not self.mounted:
            return
        self.gists, self.error, self.loading = gists, error, False
        self._changed()

    def view(self) -> dict:
        view = super().view()
        view.update(gists=self.gists, loading=self.loading, error=self.error)
        return view


class GistDetailPage(Page):
    template = "gist_detail.html"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gist: Gist | None = None
        self.loading = True
        self.error: str | None = None
        self.thread: CommentThreadSync | None = None
        self.comment_form: CommentController | None = None
        self._generation = 0

    @property
    def gist_id(self) -> str:
        return self.params["id"]

    @property
    def title(self) -> str:
        return self.gist.filename if self.gist else "Gist"

    def mount(self) -> None:
        super().mount()
        self.thread = CommentThreadSync(
            self.ctx.store,
            self.gist_id,
            on_change=self._changed,
            filter_mode=self.ctx.settings.comment_filter_mode,
        )
        self.thread.start()
        self.comment_form = self._make_comment_form()
        self._load()

    def unmount(self) -> None:
        self._generation += 1
        if self.thread is not None:
            self.thread.stop()
        if self.comment_form is not None:
            self.comment_form.dispose()
        super().unmount()

    def update_params(self, params: dict[str, str]) -> None:
        previous = self.gist_id
        super().update_params(params)
        if not self.mounted or self.gist_id == previous:
            return
        self.thread.switch(self.gist_id)
        self.comment_form.dispose()
        self.comment_form = self._make_comment_form()
        self._load()

    def _make_comment_form(self) -> CommentController:
        return CommentController(self.ctx.session_store, self.ctx.store, self.gist_id, on_change=self._changed)

    def _load(self) -> None:
        self._generation += 1
        self.gist, self.error, self.loading = None, None, True
        self._spawn(self._fetch(self._generation, self.gist_id))

    async def _fetch(self, generation: int, gist_id: str) -> None:
        gist = None
        error = None
        try:
            gist = await gist_queries.get_gist(self.ctx.store, gist_id)
        except NotFoundError:
            error = "Gist not found"
        except DocumentStoreError as e:
            logger.error("Error fetching gist %s: %s", gist_id, e)
            error = "Failed to load gist"
        # Unmounted, or now showing another gist
        if generation != self._generation or not self.mounted:
            return
        self.gist, self.error, self.loading = gist, error, False
        self._changed()

    def view(self) -> dict:
        view = super().view()
        view.update(
            gist=self.gist,
            loading=self.loading,
            error=self.error,
            comments=self.thread.comments if self.thread else [],
            comment_form=self.comment_form.state if self.comment_form else None,
            can_comment=bool(self.comment_form and self.comment_form.can_submit),
        )
        return view
