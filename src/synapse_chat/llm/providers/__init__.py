from .openai_compatible import OpenAICompatibleProvider, normalize_model_list

__all__ = ["OpenAICompatibleProvider", "normalize_model_list"]
