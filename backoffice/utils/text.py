from typing import Optional

import bleach


def strip_html(value: Optional[str]) -> Optional[str]:
    """Remove every HTML tag from free text entered by admins."""
    if not value:
        return value

    cleaned = bleach.clean(value, tags=[], attributes={}, strip=True)
    return cleaned.strip()
