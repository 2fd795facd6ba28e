"""Display helpers shared by the job, feed and worker responses."""


def format_budget(cents: int) -> str:
    """Render integer cents as dollars, e.g. ``500`` -> ``"$5.00"``."""
    return f"${cents // 100}.{cents % 100:02d}"


def story_preview(story: str, length: int = 200) -> str:
    if len(story) > length:
        return story[:length] + "..."
    return story
