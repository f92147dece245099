"""
Error taxonomy for the jspack bundler.

Every failure a build can hit is a BundleError. The resolver aborts on the
first one it sees, so a failed build never produces a partial bundle.
"""
import re


class BundleError(Exception):
    """Base exception for build failures, formatted with location and hints."""
    def __init__(self, message, module=None, suggestion=None):
        self.message = message
        self.module = module  # Identity or path of the offending module
        self.suggestion = suggestion
        super().__init__(self._format_error())

    def _format_error(self):
        """Format the error message with the failing module and a suggestion."""
        lines = [f"\n❌ {self.title}"]
        if self.module:
            lines.append(f" in {self.module}")
        lines.append(":\n")
        lines.append(f"   {self.message}\n")
        if self.suggestion:
            lines.append(f"   💡 {self.suggestion}\n")
        return "".join(lines)

    @property
    def title(self):
        return "Build Error"


class ModuleNotFoundError(BundleError):
    """A specifier could not be mapped to a readable source file."""
    def __init__(self, specifier, importer=None, suggestion=None):
        self.specifier = specifier
        self.importer = importer
        if importer is None:
            message = f"Cannot find entry module '{specifier}'"
        else:
            message = f"Cannot resolve '{specifier}' imported from '{importer}'"
        if suggestion is None and specifier.startswith("."):
            suggestion = "Check the relative path and the file extension"
        elif suggestion is None:
            suggestion = "Is the package installed in node_modules?"
        super().__init__(message, module=importer, suggestion=suggestion)

    @property
    def title(self):
        return "Module Not Found"


class TransformError(BundleError):
    """The module transformer rejected a module's source."""
    def __init__(self, file_path, cause, line_number=None, column=None):
        self.file_path = str(file_path)
        self.cause = cause
        self.line_number = line_number
        self.column = column
        if line_number is None:
            line_number, column = extract_position(cause)
            self.line_number, self.column = line_number, column
        location = ""
        if self.line_number:
            location = f" at line {self.line_number}"
            if self.column:
                location += f", column {self.column}"
        message = f"{type(cause).__name__}{location}: {first_line(cause)}"
        super().__init__(message, module=self.file_path,
                         suggestion="Check the module syntax around this line")

    @property
    def title(self):
        return "Transform Error"


class EmitError(BundleError):
    """The module graph could not be serialized into a bundle."""

    @property
    def title(self):
        return "Emit Error"


class ConfigError(BundleError):
    """Invalid jspack configuration."""

    @property
    def title(self):
        return "Configuration Error"


def extract_position(error):
    """Pull a (line, column) pair out of a lark or json exception, if any."""
    line = getattr(error, "line", None) or getattr(error, "lineno", None)
    column = getattr(error, "column", None) or getattr(error, "colno", None)
    if isinstance(line, int) and line > 0:
        return line, column if isinstance(column, int) else None
    # Lark reports "at line X col Y" in the message for some errors
    match = re.search(r'line (\d+) col(?:umn)? (\d+)', str(error))
    if match:
        return int(match.group(1)), int(match.group(2))
    return None, None


def first_line(error):
    """First non-empty line of an exception message."""
    for line in str(error).splitlines():
        if line.strip():
            return line.strip()
    return type(error).__name__
