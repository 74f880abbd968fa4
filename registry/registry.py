from dataclasses import dataclass, field
from typing import Dict, Iterable


@dataclass
class RegistryItem:
    type: str
    label: str
    description: str


@dataclass
class Registry:
    name: str
    items: Dict[str, RegistryItem] = field(default_factory=dict)

    def register(self, type_name: str, label: str, description: str) -> None:
        self.items[type_name] = RegistryItem(type=type_name, label=label, description=description)

    def get(self, type_name: str) -> RegistryItem | None:
        return self.items.get(type_name)

    def label_for(self, type_name: str) -> str:
        item = self.items.get(type_name)
        return item.label if item else type_name

    def __contains__(self, type_name: str) -> bool:
        return type_name in self.items

    def all(self) -> Iterable[RegistryItem]:
        return self.items.values()
