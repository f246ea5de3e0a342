from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .errors import ConfigurationError


DEFAULT_ROOT_URL = "https://api.zoom.us/v2"


@dataclass(frozen=True)
class OperationDescriptor:
    """A named Zoom request bound to its URL template."""

    name: str
    template: str
    collection: Optional[str] = None
    paginated: bool = False

    @property
    def params(self) -> Tuple[str, ...]:
        """Path parameters the template requires (``root`` excluded)."""
        fields = [f for _, f, _, _ in string.Formatter().parse(self.template) if f]
        return tuple(f for f in fields if f != "root")


# Add to this when new operations are made.
OPERATIONS: Dict[str, OperationDescriptor] = {
    op.name: op
    for op in (
        OperationDescriptor("getusers", "{root}/users", "users", paginated=True),
        OperationDescriptor("listwebinars", "{root}/users/{user_id}/webinars", "webinars", paginated=True),
        OperationDescriptor("listmeetings", "{root}/users/{user_id}/meetings", "meetings", paginated=True),
        OperationDescriptor("getwebinardetails", "{root}/report/webinars/{webinar_id}"),
        OperationDescriptor("getmeetingdetails", "{root}/report/meetings/{meeting_id}"),
        OperationDescriptor(
            "getwebinarregistrants", "{root}/webinars/{webinar_id}/registrants", "registrants", paginated=True
        ),
        OperationDescriptor(
            "getwebinarparticipants",
            "{root}/past_webinars/{webinar_id}/participants",
            "participants",
            paginated=True,
        ),
        OperationDescriptor(
            "getmeetingparticipants",
            "{root}/report/meetings/{meeting_id}/participants",
            "participants",
            paginated=True,
        ),
        OperationDescriptor("getmeetinginstances", "{root}/past_meetings/{meeting_id}/instances", "meetings"),
        OperationDescriptor("getpanelists", "{root}/webinars/{webinar_id}/panelists", "panelists"),
        OperationDescriptor("getwebinarpolls", "{root}/report/webinars/{webinar_id}/polls", "questions"),
        OperationDescriptor("getwebinarqanda", "{root}/report/webinars/{webinar_id}/qa", "questions"),
        OperationDescriptor(
            "gettrackingsources", "{root}/webinars/{webinar_id}/tracking_sources", "tracking_sources"
        ),
    )
}


def get_operation(name: str) -> OperationDescriptor:
    try:
        return OPERATIONS[name]
    except KeyError:
        raise ConfigurationError(
            f"Internal error: invalid URL generation query '{name}'"
        ) from None


def resolve(name: str, root_url: str = DEFAULT_ROOT_URL, **path_params: str) -> str:
    """
    Build the fully-qualified URL for a named operation.

    Pure string substitution; raises ConfigurationError for unknown names
    or missing path parameters.
    """
    op = get_operation(name)

    missing = [p for p in op.params if path_params.get(p) in (None, "")]
    if missing:
        raise ConfigurationError(
            f"Operation '{name}' requires path parameter(s): {', '.join(missing)}"
        )

    values = {p: str(path_params[p]) for p in op.params}
    return op.template.format(root=root_url.rstrip("/"), **values)
