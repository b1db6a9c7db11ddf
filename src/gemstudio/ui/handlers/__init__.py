"""UI event handlers organized by feature area.

This package provides handlers for all Gradio UI events:
- generation: Session start-up, image generation, and reference images
- history: History selection, deletion, and clearing
"""

from .generation import (
    add_reference_images,
    clear_reference_images,
    generate_image,
    load_studio,
    lock_generate_button,
    unlock_generate_button,
)
from .history import (
    clear_history,
    delete_history_item,
    refresh_history,
    select_history_item,
)

__all__ = [
    # Generation handlers
    "add_reference_images",
    "clear_reference_images",
    "generate_image",
    "load_studio",
    "lock_generate_button",
    "unlock_generate_button",
    # History handlers
    "clear_history",
    "delete_history_item",
    "refresh_history",
    "select_history_item",
]
