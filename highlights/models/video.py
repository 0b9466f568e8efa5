"""
YouTube Data API Models

Response shapes for the search and videos endpoints, plus the flattened
candidate the matching engine ranks.
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict


class Thumbnail(BaseModel):
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


class SearchItemId(BaseModel):
    video_id: Optional[str] = Field(None, alias="videoId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SearchItem(BaseModel):
    id: SearchItemId

    model_config = ConfigDict(extra="ignore")


class PageInfo(BaseModel):
    total_results: int = Field(0, alias="totalResults")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SearchResponse(BaseModel):
    """GET /search"""
    items: List[SearchItem] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo, alias="pageInfo")
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def video_ids(self) -> List[str]:
        return [item.id.video_id for item in self.items if item.id.video_id]


class Snippet(BaseModel):
    title: str
    description: str = ""
    channel_id: str = Field(..., alias="channelId")
    channel_title: str = Field(..., alias="channelTitle")
    published_at: datetime = Field(..., alias="publishedAt")
    thumbnails: Dict[str, Thumbnail] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ContentDetails(BaseModel):
    duration: str = ""

    model_config = ConfigDict(extra="ignore")


class Statistics(BaseModel):
    view_count: Optional[int] = Field(None, alias="viewCount")
    like_count: Optional[int] = Field(None, alias="likeCount")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class VideoItem(BaseModel):
    id: str
    snippet: Snippet
    content_details: ContentDetails = Field(default_factory=ContentDetails, alias="contentDetails")
    statistics: Optional[Statistics] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class VideosResponse(BaseModel):
    """GET /videos"""
    items: List[VideoItem] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class VideoCandidate(BaseModel):
    """
    A ranked search result with its details merged in.

    Order in a candidate list is YouTube's relevance order.
    """
    id: str = Field(..., description="YouTube video ID")
    title: str
    description: str = ""
    channel_id: str
    channel_title: str
    published_at: datetime
    thumbnail_url: str = ""
    duration: str = Field("", description="ISO 8601 duration token, e.g. PT9M41S")
    view_count: Optional[int] = None
    like_count: Optional[int] = None
