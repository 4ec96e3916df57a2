from __future__ import annotations

import os
from typing import Protocol

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, TemplateError, TemplateNotFound, TemplateSyntaxError

from .errors import TemplateLoadError
from .runtime import DesiredEndpoint


class RenderError(Exception):
    """Rendering one endpoint failed; the synchronizer leaves that name alone this pass."""


class Artifact(Protocol):
    kind: str

    def render(self, endpoint: DesiredEndpoint) -> bytes | None: ...


class ConfigArtifact:
    """Proxy configuration rendered from a Jinja2 template file.

    The template sees every DesiredEndpoint field plus `ssl_dir` and
    `htpasswd_dir`. Undefined variables are errors, so a typo in the template
    shows up as a render failure instead of an empty directive.
    """

    kind = "config"

    def __init__(self, template_path: str, ssl_dir: str, htpasswd_dir: str):
        self.template_path = template_path
        self.ssl_dir = ssl_dir
        self.htpasswd_dir = htpasswd_dir
        directory, self.template_name = os.path.split(os.path.abspath(template_path))
        # auto_reload re-reads the file when its mtime changes.
        self.env = Environment(
            loader=FileSystemLoader(directory),
            keep_trailing_newline=True,
            undefined=StrictUndefined,
            auto_reload=True,
        )

    def template(self) -> Template:
        try:
            return self.env.get_template(self.template_name)
        except TemplateNotFound as e:
            raise TemplateLoadError(f"Unable to load template {self.template_path}: not found") from e
        except TemplateSyntaxError as e:
            raise TemplateLoadError(f"Unable to parse template {self.template_path}: line {e.lineno}: {e.message}") from e

    def render(self, endpoint: DesiredEndpoint) -> bytes | None:
        tmpl = self.template()
        try:
            text = tmpl.render(ssl_dir=self.ssl_dir, htpasswd_dir=self.htpasswd_dir, **endpoint.template_context())
        except (TemplateError, TypeError, ValueError) as e:
            raise RenderError(f"{type(e).__name__}: {e}") from e
        return text.encode("utf-8")


class CredentialArtifact:
    """htpasswd file: one pre-hashed `user:hash` entry per line, order preserved."""

    kind = "htpasswd"

    def render(self, endpoint: DesiredEndpoint) -> bytes | None:
        if not endpoint.credential_entries:
            return None
        return "\n".join(endpoint.credential_entries).encode("utf-8")
