from typing import Any
from uuid import UUID


ALICE = UUID("11111111-1111-1111-1111-111111111111")
BOB = UUID("22222222-2222-2222-2222-222222222222")

PLANS_URL = "/api/v1/learning-plans"


def rust_basics_payload(is_public: bool = True) -> dict[str, Any]:
    """Two topics: one with a single resource, one with two."""
    return {
        "title": "Rust Basics",
        "description": "Ownership, borrowing and the standard library",
        "category": "PROGRAMMING",
        "estimated_days": 14,
        "is_public": is_public,
        "topics": [
            {
                "title": "Ownership",
                "resources": [
                    {
                        "title": "The Book, chapter 4",
                        "url": "https://doc.rust-lang.org/book/ch04-00.html",
                        "type": "BOOK",
                    },
                ],
            },
            {
                "title": "Traits",
                "resources": [
                    {"title": "Traits video", "type": "VIDEO"},
                    {"title": "Trait exercises", "type": "EXERCISE"},
                ],
            },
        ],
    }
