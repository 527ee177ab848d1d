"""
Crew onboarding -- host creates a crew, invitees resolve and join it.

    snapshot    selection snapshot codec (validated-on-read boundary)
    normalizer  raw selections -> PreferenceRecord
    join_codes  unique short join code allocation
    invites     join code -> GroupView with host-name fallback
    crews       create/join orchestration over the CrewStore
"""
