"""Error taxonomy for clipedit.

Every failure an operation can report derives from EditError. Each kind
carries the process exit code the CLI maps it to, so scripts can tell a
bad flag from a broken input file from a failed render.
"""


class EditError(Exception):
    """Base class for all clipedit failures."""

    exit_code = 1
    label = "Edit"


class ParameterError(EditError, ValueError):
    """Missing, malformed, or mutually exclusive operation parameters."""

    exit_code = 2
    label = "Parameter"


class LoadError(EditError):
    """Source metadata (tracks, duration) could not be retrieved."""

    exit_code = 3
    label = "Load"


class CompositionError(EditError):
    """A track segment could not be spliced into the composition."""

    exit_code = 4
    label = "Composition"


class RenderError(EditError):
    """The rendering backend reported a failed export."""

    exit_code = 5
    label = "Render"


class FilesystemError(EditError, OSError):
    """A directory could not be read or created."""

    exit_code = 6
    label = "Filesystem"
