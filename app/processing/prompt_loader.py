from pathlib import Path

from app.processing.exceptions import PromptLoadError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt(name: str, prompt_dir: Path | None = None) -> str:
    """Load a prompt template or JSON schema file by name.

    Args:
        name: File name inside the prompts directory, e.g. ``extraction_prompt.txt``.
        prompt_dir: Directory to read from. Defaults to the bundled prompts.

    Raises:
        PromptLoadError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PromptLoadError(f"Failed to load prompt file {name}: {exc}") from exc
