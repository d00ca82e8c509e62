from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .formats import Format
from .models import ConversionMode, ConversionOptions, ConversionResult, WrapMode
from .templates import ReferenceTemplate


class HealthStatus(BaseModel):
    status: str
    version: str


class FormatInfo(BaseModel):
    id: str
    name: str
    category: str
    extension: str
    mime_type: str
    input: bool
    output: bool

    @classmethod
    def from_format(cls, fmt: Format) -> "FormatInfo":
        return cls(
            id=fmt.value,
            name=fmt.display_name,
            category=fmt.category.value,
            extension=fmt.extension,
            mime_type=fmt.mime_type,
            input=fmt.is_input,
            output=fmt.is_output,
        )


class Capability(BaseModel):
    source: Format
    target: Format
    local: bool
    mode: ConversionMode


class OptionsModel(BaseModel):
    standalone: bool = True
    table_of_contents: bool = False
    number_sections: bool = False
    wrap: WrapMode = WrapMode.AUTO
    highlight_style: str | None = "pygments"
    template: str | None = None
    variables: dict[str, str] = Field(default_factory=dict)
    metadata: dict[str, str] = Field(default_factory=dict)

    def to_options(self) -> ConversionOptions:
        return ConversionOptions(**self.model_dump())


class ConvertRequest(BaseModel):
    text: str
    source: Format
    target: Format
    filename: str = "untitled.md"
    options: OptionsModel = Field(default_factory=OptionsModel)
    template_id: str | None = None
    mode: ConversionMode | None = None


class ConvertResponse(BaseModel):
    success: bool
    output_path: str | None = None
    preview: str | None = None
    error_message: str | None = None
    route: str | None = None
    run_id: str | None = None

    @classmethod
    def from_result(cls, result: ConversionResult) -> "ConvertResponse":
        return cls(**result.to_payload())


class ServerHealth(BaseModel):
    base_url: str
    available: bool


class ModeState(BaseModel):
    mode: ConversionMode
    description: str


class ModeUpdate(BaseModel):
    mode: ConversionMode


class TemplateInfo(BaseModel):
    id: str
    name: str
    file_name: str
    date_added: datetime
    file_size: int
    kind: str
    supported_formats: list[str]

    @classmethod
    def from_template(cls, template: ReferenceTemplate) -> "TemplateInfo":
        return cls(
            id=template.id,
            name=template.name,
            file_name=template.file_name,
            date_added=template.date_added,
            file_size=template.file_size,
            kind=template.kind.value,
            supported_formats=[fmt.value for fmt in template.kind.supported_output_formats],
        )


class TemplateRename(BaseModel):
    name: str = Field(min_length=1)
