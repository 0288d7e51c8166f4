"""Route card widget: inline editing of a route's name."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import httpx
import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from route_picker.core.config import settings
from route_picker.core.errors import UNEXPECTED_ERROR_MESSAGE
from route_picker.models.route import NAME_MAX_LENGTH
from route_picker.schemas.actions import ActionResult

logger = structlog.get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"
# autoescape is enabled for HTML; route names are user input
jinja_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)

SUBMIT_KEY = "Enter"
CANCEL_KEY = "Escape"


class RenameClient(Protocol):
    """Sends a rename to the server and reports the action result."""

    async def rename(self, route_id: int, new_name: str) -> ActionResult: ...


class HttpRenameClient:
    """RenameClient posting the updateRouteName action over HTTP."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Server origin, e.g. "http://localhost:8000"
            token: Bearer session token
            client: Existing httpx client to reuse (not closed by this class)
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.client = client
        self.timeout = timeout

    @property
    def url(self) -> str:
        return f"{self.base_url}{settings.API_V1_PREFIX}/actions/updateRouteName"

    async def rename(self, route_id: int, new_name: str) -> ActionResult:
        """
        Post the rename form.

        Returns:
            The server's ActionResult, successful or not

        Raises:
            httpx.HTTPError: On transport failure
            ValueError: If the response is not an ActionResult
        """
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        form = {"routeId": str(route_id), "newName": new_name}

        if self.client is not None:
            response = await self.client.post(self.url, data=form, headers=headers, timeout=self.timeout)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self.url, data=form, headers=headers, timeout=self.timeout)

        return ActionResult.model_validate(response.json())


@dataclass
class RouteNameEditor:
    """
    State of the inline route-name editor.

    The display name is shown as a button; activating it switches to a text
    input pre-filled with the current name. Enter submits, Escape cancels.
    Names are validated locally before anything is sent, and a rejected or
    failed rename reverts the display name and shows the error.
    """

    route_id: int
    original_name: str
    client: RenameClient
    trip_count: int = 0
    display_name: str = field(init=False)
    draft: str = field(init=False)
    editing: bool = field(default=False, init=False)
    pending: bool = field(default=False, init=False)
    error: str | None = field(default=None, init=False)
    validation_error: str | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.display_name = self.original_name
        self.draft = self.original_name

    def start_edit(self) -> None:
        """Enter edit mode with the current name as the draft."""
        self.editing = True
        self.draft = self.display_name
        self.error = None
        self.validation_error = None

    def type(self, text: str) -> None:
        """Replace the draft; any validation error is cleared."""
        self.draft = text
        self.validation_error = None

    async def key_down(self, key: str) -> bool:
        """
        Handle a key press in the input.

        Returns:
            True when the key was handled and its default action must be prevented
        """
        if key == SUBMIT_KEY:
            await self.submit()
            return True
        if key == CANCEL_KEY:
            self.cancel()
            return True
        return False

    def cancel(self) -> None:
        """Leave edit mode, discarding the draft."""
        self.editing = False
        self.draft = self.original_name
        self.display_name = self.original_name
        self.validation_error = None

    def _validate(self, name: str) -> str | None:
        if not name:
            return "Route name cannot be empty"
        if len(name) > NAME_MAX_LENGTH:
            return "Route name cannot exceed 100 characters"
        return None

    async def submit(self) -> bool:
        """
        Validate the draft and send the rename.

        Returns:
            True if the server accepted the new name
        """
        name = self.draft.strip()
        if (problem := self._validate(name)) is not None:
            self.validation_error = problem
            return False

        self.pending = True
        self.error = None
        self.display_name = name
        try:
            result = await self.client.rename(self.route_id, name)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("route_rename_request_failed", route_id=self.route_id, error=str(e))
            result = None
        finally:
            self.pending = False

        if result is None or not result.success:
            self.display_name = self.original_name
            self.error = result.error.message if result is not None and result.error else UNEXPECTED_ERROR_MESSAGE
            return False

        self.original_name = name
        self.draft = name
        self.editing = False
        return True

    def render(self, actions_path: str | None = None) -> str:
        """Render the card as HTML."""
        template = jinja_env.get_template("route_card.html")
        return template.render(
            route_id=self.route_id,
            display_name=self.display_name,
            draft=self.draft,
            editing=self.editing,
            pending=self.pending,
            error=self.error,
            validation_error=self.validation_error,
            trip_count=self.trip_count,
            actions_path=actions_path or f"{settings.API_V1_PREFIX}/actions",
            help_id=f"route-name-help-{self.route_id}",
            error_id=f"route-name-error-{self.route_id}",
            status_id=f"route-status-{self.route_id}",
        )
