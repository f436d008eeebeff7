from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator

from schemaai.graph.values import ref


class BuildContext(BaseModel):
    """Per-build facts shared by the backbone and the secondary entity builders."""

    model_config = ConfigDict(frozen=True)

    site_url: str
    site_name: str = ""
    post_url: str
    title: str = ""
    excerpt: str = ""
    summary: str = ""
    published: str = ""
    modified: str = ""
    language: str = "en-US"
    image_url: str = ""
    primary_image_id: str = ""
    organization_id: str
    author_id: str
    website_id: str = ""

    @model_validator(mode="after")
    def image_id_requires_image(self) -> "BuildContext":
        if self.primary_image_id and not self.image_url:
            raise ValueError("primary_image_id set without an image_url")
        return self

    def node_id(self, fragment: str) -> str:
        return f"{self.post_url}#{fragment}"

    def site_node_id(self, fragment: str) -> str:
        return f"{self.site_url.rstrip('/')}/#{fragment}"

    @property
    def image_ref(self) -> dict[str, str] | None:
        return ref(self.primary_image_id) if self.primary_image_id else None

    @property
    def website_ref(self) -> dict[str, str] | None:
        return ref(self.website_id) if self.website_id else None

    @property
    def publisher_ref(self) -> dict[str, str]:
        return ref(self.organization_id)

    @property
    def author_ref(self) -> dict[str, str]:
        return ref(self.author_id)
