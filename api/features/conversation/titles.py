"""Session title heuristic shared by the service and the client."""

TITLE_MAX_PREVIEW = 30

# Checked in order; the first keyword found wins.
TOPIC_TITLES = (
    ("resume", "Resume Help"),
    ("interview", "Interview Prep"),
    ("career change", "Career Transition"),
    ("salary", "Salary Discussion"),
    ("skill", "Skill Development"),
    ("network", "Networking Strategy"),
)


def generate_session_title(content: str) -> str:
    """Derive a session title from the first user message."""
    if len(content) <= TITLE_MAX_PREVIEW:
        return content

    lower = content.lower()
    for keyword, title in TOPIC_TITLES:
        if keyword in lower:
            return title

    return content[:TITLE_MAX_PREVIEW] + "..."
