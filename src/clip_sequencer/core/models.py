from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversionStatus(str, Enum):
    UNCONVERTED = "unconverted"
    CONVERTING = "converting"
    CONVERTED = "converted"
    FAILED = "failed"


class ClipDescriptor(BaseModel):
    """
    One source clip in a session.

    Serialized with camelCase keys so the session document matches what
    playback UIs read. Unknown keys supplied by ingest or the analysis
    oracle (thumbnail, upstream video ids, ...) are preserved as extras.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True, use_enum_values=True)

    id: str
    filename: str = ""
    source_locator: str = Field(default="", alias="sourceLocator")
    duration: Optional[float] = None
    resolution: Optional[Any] = None
    analysis: Optional[Any] = None
    conversion_status: ConversionStatus = Field(default=ConversionStatus.UNCONVERTED, alias="conversionStatus")
    local_media_url: Optional[str] = Field(default=None, alias="localMediaUrl")
    conversion_error: Optional[str] = Field(default=None, alias="conversionError")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClipDescriptor":
        """Build from a session document entry, accepting legacy key names."""
        data = dict(data)
        if "sourceLocator" not in data and "source_locator" not in data and "streamingUrl" in data:
            data["sourceLocator"] = data.pop("streamingUrl")
        if "localMediaUrl" not in data and "local_media_url" not in data and "mp4Url" in data:
            data["localMediaUrl"] = data.pop("mp4Url")
        if data.get("conversionStatus") == "not_converted":
            data["conversionStatus"] = ConversionStatus.UNCONVERTED.value
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    @property
    def upstream_video_id(self) -> str:
        """Identifier of the analysed upstream video, falling back to the clip id."""
        extras = self.model_extra or {}
        for key in ("videoId", "twelveLabsVideoId"):
            if extras.get(key):
                return str(extras[key])
        if isinstance(self.analysis, dict) and self.analysis.get("video_id"):
            return str(self.analysis["video_id"])
        return self.id


ClipLike = Union[ClipDescriptor, Dict[str, Any]]


def coerce_clips(clips: Sequence[ClipLike]) -> List[ClipDescriptor]:
    return [c if isinstance(c, ClipDescriptor) else ClipDescriptor.from_dict(c) for c in clips]


class Session(BaseModel):
    """
    Per-user project state.

    The id is the storage key and is not part of the persisted document.
    Extra top-level keys (e.g. a conversion summary) are kept as extras.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(exclude=True)
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    clips: List[ClipDescriptor] = Field(default_factory=list)
    sequence: Optional[Any] = None
    scores: Any = Field(default_factory=dict)
    soundtrack: Optional[Any] = None

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("clips", mode="before")
    @classmethod
    def _coerce_clips(cls, value: Any) -> Any:
        if isinstance(value, list):
            return coerce_clips(value)
        return value

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready document as written to storage."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, session_id: str, document: Dict[str, Any]) -> "Session":
        return cls.model_validate({**document, "id": session_id})

    def merged(self, partial: Dict[str, Any]) -> "Session":
        """Shallow merge of top-level keys; returns a new Session."""
        document = self.to_document()
        for key, value in partial.items():
            field_info = type(self).model_fields.get(key)
            document[field_info.alias if field_info and field_info.alias else key] = value
        return type(self).from_document(self.id, document)


class ConversionOutcome(BaseModel):
    """Result of converting one clip."""
    model_config = ConfigDict(populate_by_name=True)

    clip_id: str = Field(alias="clipId")
    original_url: Optional[str] = Field(default=None, alias="originalUrl")
    local_url: Optional[str] = Field(default=None, alias="localMediaUrl")
    status: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ConversionStatus.CONVERTED.value


class BatchConversionResult(BaseModel):
    """Aggregate of a sequenced conversion run, in sequence order."""
    model_config = ConfigDict(populate_by_name=True)

    conversions: List[ConversionOutcome] = Field(default_factory=list)
    missing_clip_ids: List[str] = Field(default_factory=list, alias="missingClipIds")

    @property
    def success_count(self) -> int:
        return sum(1 for c in self.conversions if c.ok)

    @property
    def failure_count(self) -> int:
        return sum(1 for c in self.conversions if not c.ok)

    @property
    def all_successful(self) -> bool:
        return self.failure_count == 0

    def summary(self) -> Dict[str, Any]:
        return {
            "timestamp": utcnow().isoformat(),
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "allSuccessful": self.all_successful,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, mode="json")
        data.update(
            successCount=self.success_count,
            failureCount=self.failure_count,
            allSuccessful=self.all_successful,
        )
        return data


class ClipSpec(BaseModel):
    """A time range to cut out of a shared source."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    start_time: float = Field(alias="startTime", ge=0)
    end_time: float = Field(alias="endTime")
    id: str
    title: str = ""

    @model_validator(mode="after")
    def _check_range(self) -> "ClipSpec":
        if self.end_time <= self.start_time:
            raise ValueError(f"Clip {self.id}: endTime ({self.end_time}) must be greater than startTime ({self.start_time})")
        return self


class ExtractedClip(BaseModel):
    """One materialized vertical sub-clip."""
    model_config = ConfigDict(populate_by_name=True)

    spec: ClipSpec
    local_path: str = Field(alias="localPath")
    filename: str
    url: str = Field(alias="localMediaUrl")
    duration: float
    resolution: str

    def to_dict(self) -> Dict[str, Any]:
        data = self.spec.model_dump(by_alias=True, mode="json")
        data.update(self.model_dump(by_alias=True, mode="json", exclude={"spec"}))
        return data
