"""
Pydantic models for the repolens FastAPI application
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional


class CamelModel(BaseModel):
    """Serialises with camelCase keys, accepts either spelling on input"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LanguageShare(CamelModel):
    """Share of a repository's code written in one language"""
    name: str
    percentage: float


class LanguageStat(CamelModel):
    """How many of a user's repositories use a language as primary language"""
    name: str
    count: int
    percentage: int


class RepositorySummary(CamelModel):
    """Model for a repository"""
    name: str
    full_name: Optional[str] = None
    owner: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    is_private: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    pushed_at: Optional[str] = None
    html_url: str = ""
    last_commit_date: Optional[str] = None
    languages: Optional[List[LanguageShare]] = None
    owner_location: Optional[str] = None


class UserSummary(CamelModel):
    """Model for a user profile with top repositories"""
    username: str
    name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    company: Optional[str] = None
    blog: Optional[str] = None
    avatar_url: str = ""
    github_url: str = ""
    followers: int = 0
    following: int = 0
    public_repos: int = 0
    public_gists: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    top_repositories: List[RepositorySummary] = Field(default_factory=list)
    languages: List[LanguageStat] = Field(default_factory=list)
    cached: bool = False
    response_time: int = 0


class Readme(CamelModel):
    """Model for a repository README"""
    owner: str
    repository: str
    name: str
    path: str
    content: str
    encoding: str
    size: int
    html_url: Optional[str] = None
    download_url: Optional[str] = None


class SearchResult(CamelModel):
    """Model for a page of repository search results"""
    query: str
    page: int
    total_count: int
    incomplete_results: bool = False
    items: List[RepositorySummary]


class ContributionDay(CamelModel):
    date: str
    count: int


class ContributionGraph(CamelModel):
    """Model for a user's contribution calendar"""
    username: str
    weeks: List[List[ContributionDay]]
    total_contributions: int
    month_labels: List[str]
    cached: bool = False


class CacheOperationResponse(CamelModel):
    username: str
    action: str
    keys: List[str]


class ErrorResponse(CamelModel):
    """Model for error responses"""
    status_code: int
    timestamp: str
    path: str
    error: str
    message: str
