from .loader import default_system_prompt, load_prompt

__all__ = ["default_system_prompt", "load_prompt"]
