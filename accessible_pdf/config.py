"""
Configuration management for the accessible PDF element analysis library.
Loads runtime settings from environment variables.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


class Config:
    """Configuration class for extraction and detection settings."""

    # Rasterization
    RASTER_SCALE: float = float(os.getenv('RASTER_SCALE', '2.0'))
    RASTER_TIMEOUT_SECONDS: float = float(os.getenv('RASTER_TIMEOUT_SECONDS', '10'))
    PDF_RENDER_DPI_BASE: int = int(os.getenv('PDF_RENDER_DPI_BASE', '72'))

    # Post-pass toggles
    DETECT_CHECKBOX_STATES: bool = _env_flag('DETECT_CHECKBOX_STATES', 'true')
    CLASSIFY_UNSTRUCTURED_TEXT: bool = _env_flag('CLASSIFY_UNSTRUCTURED_TEXT', 'true')

    # Unstructured text scoring sums can exceed 1.0; clamp the reported value
    CLAMP_UNSTRUCTURED_CONFIDENCE: bool = _env_flag('CLAMP_UNSTRUCTURED_CONFIDENCE', 'true')

    @classmethod
    def validate(cls) -> bool:
        """
        Validate that configuration values are usable.
        """
        if cls.RASTER_SCALE <= 0:
            raise ValueError(f"RASTER_SCALE must be positive, got {cls.RASTER_SCALE}")

        if cls.RASTER_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                f"RASTER_TIMEOUT_SECONDS must be positive, got {cls.RASTER_TIMEOUT_SECONDS}"
            )

        if cls.PDF_RENDER_DPI_BASE <= 0:
            raise ValueError(
                f"PDF_RENDER_DPI_BASE must be positive, got {cls.PDF_RENDER_DPI_BASE}"
            )
        return True
