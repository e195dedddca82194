from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Google Cloud Translation (v2 REST)
    google_translate_api_key: str = ""
    translate_api_url: str = "https://translation.googleapis.com/language/translate/v2"
    translate_target_language: str = "pt"  # Brazilian Portuguese catalog
    translate_timeout: float = 15.0

    @property
    def translate_enabled(self) -> bool:
        return bool(self.google_translate_api_key)

    # Language detection
    language_base_confidence: float = 0.8
    language_min_confidence: float = 0.7  # below this we translate anyway

    # Sentence embeddings
    embedding_model: str = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"
    embedding_fallback_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_load_timeout: float = 180.0   # first load may download weights
    embedding_inference_timeout: float = 30.0

    # Matching thresholds (score 0-100)
    semantic_threshold: int = 70
    lexical_threshold: int = 60  # lexical overlap is noisier, so looser

    # Search terms
    search_max_words: int = 6
    search_reduced_words: int = 4
    search_essential_words: int = 3
    search_min_word_length: int = 2

    # Normalizer
    normalize_max_length: int = 200

    # Price deviation bands (%): 1.5x-5x of the base price is a plausible resale
    deviation_min_pct: float = 50.0
    deviation_max_pct: float = 400.0  # above this it is almost always a mismatch

    # Log
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("semantic_threshold", "lexical_threshold")
    @classmethod
    def _score_range(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError("threshold must be between 1 and 100")
        return v

    @field_validator("language_base_confidence", "language_min_confidence")
    @classmethod
    def _unit_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("confidence must be between 0 and 1")
        return v


settings = Settings()
