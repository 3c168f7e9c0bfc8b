"""Read-only character catalog."""

from collections.abc import Iterable
from dataclasses import dataclass

from anishot.domain.characters import Character

SAMPLE_CHARACTERS: tuple[Character, ...] = (
    Character(
        id="char-1",
        name="Levi",
        thumbnail_url="/characters/levi.png",
        overlay_images=(
            "/characters/levi.png",
            "/characters/levi2.png",
            "/characters/levi3.png",
            "/characters/levi2.png",
        ),
    ),
    Character(
        id="char-2",
        name="Cheerful Puppy",
        thumbnail_url="/characters/dog-overlay.png",
        overlay_images=("/characters/dog-overlay.png",) * 4,
    ),
    Character(
        id="char-3",
        name="Mysterious Rabbit",
        thumbnail_url="/characters/rabbit-overlay.png",
        overlay_images=("/characters/rabbit-overlay.png",) * 4,
    ),
)


@dataclass
class CharacterCatalog:
    """In-memory lookup of selectable characters."""

    characters: dict[str, Character]

    @classmethod
    def from_characters(cls, characters: Iterable[Character]) -> "CharacterCatalog":
        return cls(characters={character.id: character for character in characters})

    @classmethod
    def default(cls) -> "CharacterCatalog":
        """Return the catalog of bundled sample characters."""
        return cls.from_characters(SAMPLE_CHARACTERS)

    def get(self, character_id: str) -> Character | None:
        return self.characters.get(character_id)

    def list_characters(self) -> list[Character]:
        return list(self.characters.values())
