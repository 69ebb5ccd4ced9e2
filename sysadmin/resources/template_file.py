"""Template file resource for creating files from Jinja2 templates."""

from typing import Any

from pydantic import Field

from .file import FileResource


class TemplateFileResource(FileResource):
    """Template file resource - a file rendered from a packaged Jinja2 template.

    The template is rendered when the plan is compiled, so the provider only
    ever sees the final content and diffs on it.

    Usage:
        TemplateFileResource(
            name="localadmin-profile",
            path="/var/lib/localadmin/.profile",
            template="profile.j2",
            variables={"login": "localadmin", "configfile": "..."},
        )
    """

    template: str = Field(..., description="Template name under sysadmin/templates", examples=["profile.j2"])
    variables: dict[str, Any] = Field(default_factory=dict, description="Template variables as key-value pairs")

    def rendered(self) -> str:
        from sysadmin.templating import render_template

        return render_template(self.template, **self.variables)
