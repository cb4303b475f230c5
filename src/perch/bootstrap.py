"""Session bootstrap: make every new session resolve views from the container.

A fresh session arrives with the host's ``DefaultViewProvider``, which
would serve the servlet's configured ``ui`` class for *every* path (and
picks up stray view classes, e.g. a servlet declared next to a view).
The listener swaps it for a ``ContainerViewProvider``.

Order of operations matters: the application context is resolved first,
so a missing container fails the session before anything is removed.
The reconciliation itself runs under the session lock, so concurrent
resolution never observes a session without providers.
"""

import logging

from perch.di import ContainerViewProvider, resolve_application_context
from perch.errors import ServiceInitializationError
from perch.session import SessionInitEvent
from perch.servlet import ServletContext
from perch.ui import DEFAULT_VIEW_PROVIDER, canonical_name

logger = logging.getLogger("perch.bootstrap")


class ContainerSessionInitListener:
    """Session-init listener installed by ``ContainerServlet``."""

    __slots__ = ("servlet_context",)

    def __init__(self, servlet_context: ServletContext) -> None:
        self.servlet_context = servlet_context

    def session_init(self, event: SessionInitEvent) -> None:
        context = resolve_application_context(self.servlet_context)
        if context is None:
            msg = (
                "No application context is published for this deployment. "
                "Call publish_application_context() before serving requests."
            )
            raise ServiceInitializationError(msg)

        session = event.session
        with session.lock:
            # Compare by name: the default provider may come from another import
            for provider in session.get_view_providers():
                if canonical_name(provider) == DEFAULT_VIEW_PROVIDER:
                    session.remove_view_provider(provider)
            session.add_view_provider(ContainerViewProvider(context))

        logger.debug("Session %s bootstrapped with %r", session.id[:8], context)

    def __repr__(self) -> str:
        return "ContainerSessionInitListener()"
