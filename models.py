# --- models.py ---

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple


@dataclass(frozen=True)
class FileStat:
    """
    Point-in-time description of a single file or directory.

    A FileStat is never updated after it is built. Operations that change
    the disk return a brand-new FileStat.
    """
    uri: str
    last_modification: int  # Epoch milliseconds
    is_directory: bool

    # Files only
    size: Optional[int] = None

    # Directories only. Empty (not None) beyond the depth budget.
    children: Optional[Tuple['FileStat', ...]] = None

    def __post_init__(self):
        if self.is_directory:
            if self.size is not None:
                raise ValueError(f"A directory stat cannot carry a size. URI: {self.uri}.")
            if self.children is None:
                object.__setattr__(self, 'children', ())
            elif not isinstance(self.children, tuple):
                object.__setattr__(self, 'children', tuple(self.children))
        else:
            if self.children is not None:
                raise ValueError(f"A file stat cannot carry children. URI: {self.uri}.")
            if self.size is None:
                raise ValueError(f"A file stat must carry a size. URI: {self.uri}.")

    @property
    def label(self) -> str:
        return 'directory' if self.is_directory else 'file'


@dataclass(frozen=True)
class CallOptions:
    """
    Per-call overrides. None means "use the process-wide default".
    Built fresh for every call and thrown away afterwards.
    """
    encoding: Optional[str] = None
    overwrite: Optional[bool] = None
    recursive: Optional[bool] = None
    move_to_trash: Optional[bool] = None
    content: Optional[str] = None


@dataclass(frozen=True)
class FileSystemOptions:
    """Process-wide defaults, injected once into FileSystemNode."""
    encoding: str = 'utf-8'
    overwrite: bool = False
    recursive: bool = True
    move_to_trash: bool = True

    def resolve(self, call: Optional[CallOptions] = None, **overrides) -> 'ResolvedOptions':
        """
        Merges per-call overrides over these defaults.

        Overrides may come as a CallOptions bundle, as keyword arguments,
        or both (keywords win). Values that are None fall back to the
        defaults.
        """
        merged = {}
        if call is not None:
            merged.update({k: v for k, v in vars(call).items() if v is not None})
        merged.update({k: v for k, v in overrides.items() if v is not None})

        unknown = set(merged) - set(CallOptions.__dataclass_fields__)
        if unknown:
            raise TypeError(f"Unknown option(s): {', '.join(sorted(unknown))}")

        content = merged.pop('content', '')
        defaults = replace(self, **merged)
        return ResolvedOptions(
            encoding=defaults.encoding,
            overwrite=defaults.overwrite,
            recursive=defaults.recursive,
            move_to_trash=defaults.move_to_trash,
            content=content,
        )


@dataclass(frozen=True)
class ResolvedOptions:
    """The transient merged view used for the duration of one call."""
    encoding: str
    overwrite: bool
    recursive: bool
    move_to_trash: bool
    content: str = field(default='')


DEFAULT_OPTIONS = FileSystemOptions()
