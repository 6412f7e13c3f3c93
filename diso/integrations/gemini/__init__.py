from diso.integrations.gemini.client import GeminiInferenceClient, InferenceClient, parse_verdict

__all__ = ["GeminiInferenceClient", "InferenceClient", "parse_verdict"]
