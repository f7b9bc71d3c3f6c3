""" Characters that appear in dialogue """

import dataclasses
from typing import Any, Optional
from collections.abc import Iterable, Iterator, Mapping

@dataclasses.dataclass
class CharacterData:
    character_id:str
    name:str
    is_3d:bool = False
    expressions:list[str] = dataclasses.field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.character_id, "name": self.name, "is_3d": self.is_3d, "expressions": list(self.expressions)}

    @staticmethod
    def from_dict(data:Mapping[str, Any]) -> "CharacterData":
        if "id" not in data:
            raise ValueError(f'character is missing required key "id": {data!r}')
        return CharacterData(
            str(data["id"]),
            str(data.get("name", data["id"])),
            bool(data.get("is_3d", False)),
            [str(x) for x in data.get("expressions", ())],
        )

class CharacterDatabase:
    def __init__(self, characters:Optional[Iterable[CharacterData]]=None) -> None:
        self.characters:dict[str, CharacterData] = {}
        for c in characters or ():
            self.add(c)

    def __len__(self) -> int:
        return len(self.characters)

    def __iter__(self) -> Iterator[CharacterData]:
        return iter(self.characters.values())

    def add(self, character:CharacterData) -> None:
        self.characters[character.character_id] = character

    def get(self, character_id:str) -> Optional[CharacterData]:
        return self.characters.get(character_id)

    def display_name(self, character_id:str) -> str:
        """ the name to show for a speaker

        narration (no character) has an empty name, an unknown character shows
        its id """
        if not character_id:
            return ""
        c = self.characters.get(character_id)
        return c.name if c else character_id
