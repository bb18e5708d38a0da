"""
Renderers for resolution manifests: a plain text report, JSON and YAML.
"""
import json
import yaml
from jinja2 import Template
from ..MODELS.manifest import ResolutionManifest

TEXT_TEMPLATE = """\
Container: {{ container.name }} ({{ container.id[:12] }})
Entrypoint: {{ tokens | join(' ') }} [{{ kind }}]

Commands ({{ commands | length }}):
{% for c in commands %}  {{ c.name }} -> {{ c.path }}
{% else %}  (none)
{% endfor %}
{%- if unresolved %}
Unresolved ({{ unresolved | length }}):
{% for name in unresolved %}  {{ name }}
{% endfor %}
{%- endif %}
Libraries ({{ libraries | length }}):
{% for lib in libraries %}  {{ lib.path }}
{% else %}  (none)
{% endfor %}"""


class ManifestRenderer:
    """
    Converts a ResolutionManifest into a printable document.
    """
    FORMATS = ("text", "json", "yaml")

    def __init__(self):
        self.template = Template(TEXT_TEMPLATE)

    def render(self, manifest: ResolutionManifest, fmt: str = "text") -> str:
        """
        Renders the manifest.

        :param manifest: The manifest to render.
        :param fmt: One of ``text``, ``json`` or ``yaml``.
        :return: The rendered document.
        :raises ValueError: For an unknown format.
        """
        if fmt == "text":
            return self.to_text(manifest)
        if fmt == "json":
            return self.to_json(manifest)
        if fmt == "yaml":
            return self.to_yaml(manifest)
        raise ValueError(f"Unknown output format: {fmt}")

    def to_text(self, manifest: ResolutionManifest) -> str:
        return self.template.render(
            container=manifest.container,
            tokens=manifest.container.invocation_tokens(),
            kind=manifest.kind.value,
            commands=manifest.commands,
            unresolved=manifest.unresolved,
            libraries=manifest.libraries,
        )

    def to_json(self, manifest: ResolutionManifest) -> str:
        return json.dumps(self._to_dict(manifest), indent=2)

    def to_yaml(self, manifest: ResolutionManifest) -> str:
        return yaml.safe_dump(self._to_dict(manifest), sort_keys=False)

    @staticmethod
    def _to_dict(manifest: ResolutionManifest) -> dict:
        data = manifest.model_dump(mode="json")
        data["files"] = manifest.files
        return data
