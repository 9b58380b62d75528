"""
Menu catalog: the single place menu identities are resolved.
"""

from typing import Dict, Iterable, Iterator, List, Union

from models import Menu, MenuIdentity
from .errors import MenuNotFoundError


class MenuCatalog:
    """
    Read-only index of the menu master.
    Resolution tries the ID first, then the display name.
    """

    def __init__(self, menus: Iterable[Menu]):
        self._menus: List[Menu] = list(menus)
        # Index for O(1) lookup
        self._by_id: Dict[str, Menu] = {m.id: m for m in self._menus}
        self._by_name: Dict[str, Menu] = {}
        for menu in self._menus:
            self._by_name.setdefault(menu.name, menu)

    def resolve(self, ref: Union[MenuIdentity, str]) -> Menu:
        """Return the menu for an identity (or a bare id/name string)."""
        keys = ref.keys() if isinstance(ref, MenuIdentity) else [ref]

        for key in keys:
            if key in self._by_id:
                return self._by_id[key]
        for key in keys:
            if key in self._by_name:
                return self._by_name[key]

        label = ref.label() if isinstance(ref, MenuIdentity) else str(ref)
        raise MenuNotFoundError(label)

    def names(self) -> List[str]:
        return [m.name for m in self._menus]

    def __iter__(self) -> Iterator[Menu]:
        return iter(self._menus)

    def __len__(self) -> int:
        return len(self._menus)
