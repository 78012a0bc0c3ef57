"""
Bug reports submitted by editor users and turned into GitHub issues.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class BugReport(BaseModel):
    """A bug report as posted to ``/issues``."""

    title: str = Field(..., min_length=1)
    description: str
    url: str
    mode: Literal["teacher", "code", "blocks"]
    browser: Optional[str] = None
    project: Optional[str] = None
    course: Optional[str] = None
    email: Optional[str] = None

    def reporter_link(self) -> str:
        email = self.email or ""
        name = email or "alguien que no dejó su correo electrónico"
        return f"[{name}](mailto:{email})"

    def to_markdown_body(self) -> str:
        """Render the issue body, in the editor's language."""
        lines = [
            self.description,
            "",
            f"_Defecto reportado por {self.reporter_link()}._",
            "",
            "<details>",
            "  <summary>:information_source: Información adicional</summary>",
            "",
            f"  - :globe_with_meridians: **Navegador:** {self.browser or '(desconocido)'}",
            f"  - :paperclip: **URL consultada:** {self.url}",
            f"  - :closed_book: **Curso:** {self.course or '(ninguno)'}",
            f"  - :pencil: **Proyecto:** {self.project or '(ninguno)'}",
            "</details>",
        ]
        return "\n".join(lines)
