"""Builders for status pages shaped like the controller's ``/z`` response."""

from __future__ import annotations

from typing import Iterable

HEADER_ROW = (
    "<tr><th>#</th><th>Name</th><th>Type</th><th>Mode</th><th>Delay</th>"
    "<th>Zone</th><th>Last OK</th><th>Last alarm</th><th>State</th></tr>"
)


def make_row(
    index: int,
    name: str,
    last_ok: str = "0:0:1:0",
    last_alarm: str = "-",
    alarming: bool = False,
    zone: str = "3 - pir",
) -> str:
    icon = "<i class='fa fa-bell'></i>" if alarming else "<i class='fa fa-check'></i>"
    return (
        f"<tr><td>{index}.</td><td>{name}</td><td>PIR</td><td>Armed</td>"
        f"<td>10 second(s)</td><td>{zone}</td><td>{last_ok}</td>"
        f"<td>{last_alarm}</td><td>{icon}</td></tr>"
    )


def make_placeholder(index: int) -> str:
    cells = "".join("<td>-</td>" for _ in range(7))
    return f"<tr><td>{index}.</td>{cells}<td></td></tr>"


def make_page(rows: Iterable[str]) -> str:
    body = "".join(rows)
    return (
        "<html>\n"
        "<head><title>OHS</title></head>\n"
        f'<body onload="refresh()"><table>{HEADER_ROW}{body}</table></body>\n'
        "</html>\n"
    )


def page_for(*names: str) -> str:
    """A page where every named sensor has been OK for a minute."""
    return make_page(make_row(index, name) for index, name in enumerate(names, start=1))


LOGIN_PAGE = "<html>\n<body><form action='/login'><input name='user'></form></body>\n</html>\n"
