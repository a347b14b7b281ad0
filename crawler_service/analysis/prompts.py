INSTAGRAM_PROFILE_PROMPT = """Analyze this Instagram profile screenshot and extract the following information.
Look carefully at the profile header, which typically shows:
- Username (handle starting with @)
- Display name (full name shown on the profile)
- Bio/description text
- Follower count
- Following count
- Verification status (blue checkmark)

For the demographic and profile type fields, make an educated guess from the
profile photo, name, bio and content style.

Respond in JSON with exactly these fields:

{
  "username": "string - handle without the @ symbol",
  "display_name": "string - full display name shown on the profile",
  "bio": "string - profile bio/description text",
  "follower_count": "number|null - followers, null if not visible",
  "following_count": "number|null - accounts followed, null if not visible",
  "is_verified": "boolean - true if the profile has a blue checkmark",
  "ethnicity": "string|null - ASIAN, BLACK, HISPANIC, MIDDLE_EASTERN, NATIVE_AMERICAN, PACIFIC_ISLANDER or WHITE",
  "gender": "string|null - MALE or FEMALE",
  "age_group": "string|null - YOUNG_ADULT, MIDDLE_AGED or SENIOR",
  "profile_type": "string - INFLUENCER, RESTAURANT or OTHER"
}

Return valid JSON that matches this structure exactly."""

COMMENT_SECTION_PROMPT = """Carefully analyze this screen recording of an Instagram comments section
and extract every comment you can see.
For each comment look for:
- Comment text
- Commenter username
- Relative timestamp of the comment
- Like count
- Reply count

Respond in JSON with exactly this structure:

{
  "comments": [
    {
      "text": "string - comment text, with repeated characters/words/emojis truncated",
      "username": "string - commenter username",
      "uploaded_at": {
        "unit": "string - second, minute, hour, day, week, month or year",
        "value": "number - how many units ago"
      },
      "like_count": "number - like count",
      "reply_count": "number - reply count (0 if not visible)"
    }
  ]
}

Return valid JSON that matches this structure exactly."""
