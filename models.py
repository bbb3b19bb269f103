"""
Data models for browser fingerprints, persisted session state and search results.
"""

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Title of the synthetic result returned when a search run fails
FAILURE_TITLE = "Search failed"


class FingerprintConfig(BaseModel):
    """Browser identity presented to the search engine (always a desktop profile)"""
    device_name: str = Field(alias='deviceName')
    locale: str
    timezone_id: str = Field(alias='timezoneId')
    color_scheme: Literal['dark', 'light'] = Field(alias='colorScheme')
    reduced_motion: Literal['reduce', 'no-preference'] = Field('no-preference', alias='reducedMotion')
    forced_colors: Literal['active', 'none'] = Field('none', alias='forcedColors')

    model_config = ConfigDict(populate_by_name=True)


class SavedState(BaseModel):
    """Identity sidecar contents: fingerprint and chosen Google domain"""
    fingerprint: Optional[FingerprintConfig] = None
    google_domain: Optional[str] = Field(None, alias='googleDomain')

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        """Serialize with camelCase keys and 2-space indentation"""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class SearchOptions(BaseModel):
    """Options for a single search invocation"""
    limit: int = Field(10, ge=1)
    timeout: int = Field(60000, gt=0)  # milliseconds
    state_file: Optional[Path] = Field(None, alias='stateFile')
    no_save_state: bool = Field(False, alias='noSaveState')
    locale: str = "en-US"
    debug: bool = False

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator('locale')
    @classmethod
    def validate_locale(cls, v):
        if not v or not v.strip():
            raise ValueError('locale must not be empty')
        return v.strip()


class SearchResult(BaseModel):
    """A single organic search result"""
    title: str
    link: str
    snippet: str = ""


class SearchResponse(BaseModel):
    """Results of one query, in page order"""
    query: str
    results: List[SearchResult] = []

    @property
    def failed(self) -> bool:
        """True when this is the synthetic diagnostic response of a failed run"""
        return len(self.results) == 1 and self.results[0].title == FAILURE_TITLE

    @classmethod
    def failure(cls, query: str, error: BaseException) -> "SearchResponse":
        """Build the diagnostic response carrying an error message"""
        return cls(
            query=query,
            results=[
                SearchResult(
                    title=FAILURE_TITLE,
                    link="",
                    snippet=f"Unable to complete search, error message: {error}",
                )
            ],
        )
