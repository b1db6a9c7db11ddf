"""Studio UI: session state, history presentation, generation orchestration.

The framework-free pieces (``models``, ``presenter``, ``orchestrator``,
``state``) can be used without Gradio; ``app`` and ``handlers`` bind them to
a Gradio Blocks interface.
"""
