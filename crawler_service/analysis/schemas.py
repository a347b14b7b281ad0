from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

Ethnicity = Literal[
    "ASIAN",
    "BLACK",
    "HISPANIC",
    "MIDDLE_EASTERN",
    "NATIVE_AMERICAN",
    "PACIFIC_ISLANDER",
    "WHITE",
]
Gender = Literal["MALE", "FEMALE"]
AgeGroup = Literal["YOUNG_ADULT", "MIDDLE_AGED", "SENIOR"]
ProfileType = Literal["INFLUENCER", "RESTAURANT", "OTHER"]
TimeUnit = Literal["second", "minute", "hour", "day", "week", "month", "year"]


class ProfileAnalysis(BaseModel):
    username: str
    display_name: str
    bio: str
    follower_count: Optional[int]
    following_count: Optional[int]
    is_verified: bool
    ethnicity: Optional[Ethnicity]
    gender: Optional[Gender]
    age_group: Optional[AgeGroup]
    profile_type: ProfileType


class RelativeTimestamp(BaseModel):
    unit: TimeUnit
    value: float


class CommentAnalysis(BaseModel):
    text: str
    username: str
    uploaded_at: RelativeTimestamp
    like_count: int
    reply_count: int


class CommentSectionAnalysis(BaseModel):
    comments: list[CommentAnalysis]
