"""Gradio UI for Gemini Studio."""

import logging

import gradio as gr

from gemstudio.core.config import config

from .handlers import (
    add_reference_images,
    clear_history,
    clear_reference_images,
    delete_history_item,
    generate_image,
    load_studio,
    lock_generate_button,
    refresh_history,
    select_history_item,
    unlock_generate_button,
)
from .handlers.generation import READY_MESSAGE
from .models import BrowserProfile, StudioSession

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_ui() -> gr.Blocks:
    """Create the studio Gradio UI.

    Returns:
        Gradio Blocks app
    """
    app = gr.Blocks(title="Gemini Studio")

    with app:
        # Session state - one instance per user
        session = gr.State(StudioSession())
        # Profile id and API key live in the visitor's own browser
        browser = gr.BrowserState(
            BrowserProfile().to_state(),
            storage_key=config.browser_state_key,
            secret=config.browser_state_secret,
        )

        gr.Markdown(
            """
            # Gemini Studio
            ### Image generation with Gemini, with a local history
            """
        )

        with gr.Row():
            with gr.Column(scale=1):
                controls = create_controls()

            with gr.Column(scale=2):
                stage = create_stage()

            with gr.Column(scale=1):
                history = create_history_sidebar()

        # Page load: open history, restore API key
        app.load(
            fn=load_studio,
            inputs=[browser, session],
            outputs=[
                controls["api_key"],
                controls["model"],
                controls["aspect_ratio"],
                stage["main_image"],
                stage["download_btn"],
                history["gallery"],
                controls["reference_gallery"],
                history["status"],
                browser,
                session,
            ],
        )

        # Generate: the button stays disabled while the attempt is in flight
        controls["generate_btn"].click(
            fn=lock_generate_button,
            outputs=[controls["generate_btn"]],
        ).then(
            fn=generate_image,
            inputs=[
                controls["api_key"],
                controls["prompt"],
                controls["model"],
                controls["aspect_ratio"],
                controls["resolution"],
                session,
            ],
            outputs=[
                stage["main_image"],
                stage["download_btn"],
                controls["prompt"],
                controls["reference_gallery"],
                history["gallery"],
                stage["info"],
                history["status"],
                browser,
                session,
            ],
        ).then(
            fn=unlock_generate_button,
            outputs=[controls["generate_btn"]],
        )

        # Reference images
        controls["reference_upload"].upload(
            fn=add_reference_images,
            inputs=[controls["reference_upload"], session],
            outputs=[controls["reference_gallery"], stage["info"], session],
        ).then(
            fn=lambda: None,
            outputs=[controls["reference_upload"]],
        )
        controls["clear_refs_btn"].click(
            fn=clear_reference_images,
            inputs=[session],
            outputs=[controls["reference_gallery"], stage["info"], session],
        )

        # History
        history["gallery"].select(
            fn=select_history_item,
            inputs=[session],
            outputs=[
                stage["main_image"],
                stage["download_btn"],
                controls["prompt"],
                controls["model"],
                controls["reference_gallery"],
                history["download_btn"],
                stage["info"],
                session,
            ],
        )
        history["delete_btn"].click(
            fn=delete_history_item,
            inputs=[session],
            outputs=[history["gallery"], stage["info"], session],
        )
        history["clear_btn"].click(
            fn=clear_history,
            inputs=[session],
            outputs=[
                history["gallery"],
                stage["main_image"],
                stage["download_btn"],
                stage["info"],
                session,
            ],
        )
        history["refresh_btn"].click(
            fn=refresh_history,
            inputs=[session],
            outputs=[history["gallery"], session],
        )

    return app


def create_controls() -> dict:
    """Create the generation form.

    Returns:
        Dictionary of form components for event handling
    """
    gr.Markdown("### Settings")

    api_key = gr.Textbox(
        label="Gemini API Key",
        type="password",
        placeholder="Paste your API key",
    )
    prompt = gr.Textbox(
        label="Prompt",
        lines=4,
        placeholder="Describe the image you want...",
    )
    model = gr.Dropdown(
        label="Model",
        choices=config.available_models,
        value=config.default_model,
        allow_custom_value=True,
    )
    with gr.Row():
        aspect_ratio = gr.Dropdown(
            label="Aspect Ratio",
            choices=config.aspect_ratios,
            value=config.default_aspect_ratio,
            allow_custom_value=True,
        )
        resolution = gr.Dropdown(
            label="Resolution",
            choices=[("Default", "")] + [(value, value) for value in config.resolutions],
            value="",
        )

    gr.Markdown("**Reference Images** (up to 3)")
    reference_upload = gr.File(
        label="Add reference images",
        file_count="multiple",
        file_types=["image"],
        type="filepath",
    )
    reference_gallery = gr.Gallery(
        label="Queued references",
        columns=3,
        height=140,
        object_fit="cover",
    )
    clear_refs_btn = gr.Button("Clear References", size="sm")

    generate_btn = gr.Button("Generate", variant="primary")

    return {
        "api_key": api_key,
        "prompt": prompt,
        "model": model,
        "aspect_ratio": aspect_ratio,
        "resolution": resolution,
        "reference_upload": reference_upload,
        "reference_gallery": reference_gallery,
        "clear_refs_btn": clear_refs_btn,
        "generate_btn": generate_btn,
    }


def create_stage() -> dict:
    """Create the main image stage.

    Returns:
        Dictionary of stage components for event handling
    """
    main_image = gr.Image(
        label="Generated Image",
        type="pil",
        height=560,
        interactive=False,
    )
    download_btn = gr.DownloadButton("Download", size="sm")
    info = gr.Markdown(value=READY_MESSAGE)

    return {"main_image": main_image, "download_btn": download_btn, "info": info}


def create_history_sidebar() -> dict:
    """Create the history sidebar.

    Returns:
        Dictionary of history components for event handling
    """
    gr.Markdown("### History")

    status = gr.Markdown(value="*No history yet*")
    gallery = gr.Gallery(
        label="History",
        columns=2,
        height=600,
        object_fit="cover",
        allow_preview=False,
    )
    with gr.Row():
        download_btn = gr.DownloadButton("Download", size="sm")
        delete_btn = gr.Button("Delete", size="sm", variant="stop")
    with gr.Row():
        refresh_btn = gr.Button("Refresh", size="sm")
        clear_btn = gr.Button("Clear All", size="sm")

    return {
        "status": status,
        "gallery": gallery,
        "download_btn": download_btn,
        "delete_btn": delete_btn,
        "refresh_btn": refresh_btn,
        "clear_btn": clear_btn,
    }


def main():
    """Main entry point: serve the proxy API and the studio UI together."""
    import uvicorn

    from gemstudio.api.main import app as api_app

    logger.info("Starting Gemini Studio...")
    logger.info(f"Data directory: {config.data_dir}")
    logger.info(f"Generation endpoint: {config.resolved_proxy_url}")

    app = gr.mount_gradio_app(api_app, create_ui(), path="/")

    logger.info(f"Serving on {config.server_host}:{config.server_port}")
    uvicorn.run(app, host=config.server_host, port=config.server_port)


if __name__ == "__main__":
    main()
