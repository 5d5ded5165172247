import logging
from pathlib import Path
import re
from typing import Dict, List, Optional, Set

logger = logging.getLogger(__name__)


class TemplateError(Exception):
    """Exception raised for template-related errors."""

    def __init__(self, message: str, template_name: Optional[str] = None):
        self.template_name = template_name
        if template_name:
            super().__init__(f"Template error in '{template_name}': {message}")
        else:
            super().__init__(f"Template error: {message}")


class TemplateManager:
    """Loads and fills the text templates used for prompts and console output."""

    def load_templates(self, template_dir: str) -> Dict[str, str]:
        """Load every *.txt file in a directory, keyed by file stem.

        Raises:
            TemplateError: If the directory is missing, empty, or unreadable

        Example:
            >>> templates = TemplateManager().load_templates("prompts/console/")
            >>> print(templates["status"])
        """
        template_path = Path(template_dir)

        if not template_path.exists():
            raise TemplateError(f"Template directory '{template_dir}' does not exist")

        if not template_path.is_dir():
            raise TemplateError(f"Template path '{template_dir}' is not a directory")

        template_files = sorted(template_path.glob("*.txt"))
        if not template_files:
            raise TemplateError(f"No template files found in '{template_dir}'")

        templates = {}
        for template_file in template_files:
            try:
                templates[template_file.stem] = template_file.read_text(encoding="utf-8")
            except OSError as e:
                raise TemplateError(
                    f"Failed to load template from '{template_file}': {e}",
                    template_file.stem
                ) from e
            logger.debug(f"Loaded template '{template_file.stem}' from {template_file}")

        logger.info(f"Loaded {len(templates)} templates from {template_dir}")
        return templates

    def format_template(self, template: str, **kwargs) -> str:
        """Fill {variable} placeholders.

        Raises:
            TemplateError: If a placeholder has no value or the template is malformed
        """
        try:
            return template.format(**kwargs)

        except KeyError as e:
            missing_var = str(e).strip("'\"")
            raise TemplateError(f"Missing required variable: {missing_var}") from e

        except (IndexError, ValueError) as e:
            raise TemplateError(f"Template formatting failed: {e}") from e

    def missing_template_vars(self, template: str, required_vars: List[str]) -> List[str]:
        """Return the required variables a template never references."""
        return sorted(set(required_vars) - self._extract_template_vars(template))

    def _extract_template_vars(self, template: str) -> Set[str]:
        # Escaped braces ({{ and }}) are literal text
        unescaped = template.replace("{{", "").replace("}}", "")
        variables = set()
        for match in re.findall(r"\{([^{}]+)\}", unescaped):
            # Drop format specs and conversions like {var:02d} or {var!r}
            var_name = re.split(r"[:!]", match)[0].strip()
            if var_name:
                variables.add(var_name)
        return variables


def load_templates(template_dir: str) -> Dict[str, str]:
    return TemplateManager().load_templates(template_dir)


def format_template(template: str, **kwargs) -> str:
    return TemplateManager().format_template(template, **kwargs)
