from dataclasses import dataclass

from recordmap.utils import get_available_dialects

__all__ = ['MapperOptions']


@dataclass
class MapperOptions:
    """Options

    supported dialects: `postgresql`, `sqlite`

    - dialect: placeholder dialect, or None to detect it from each connection
    - tag_name: dataclass field metadata key holding the persistence tag
    """
    dialect: str | None = None
    tag_name: str = 'db'

    def __post_init__(self):
        if self.dialect is not None:
            self.dialect = self.dialect.lower()
            if self.dialect not in get_available_dialects():
                available = get_available_dialects()
                raise ValueError(f'dialect must be one of: {available}')
        if not self.tag_name:
            raise ValueError('tag_name must be a non-empty string')
