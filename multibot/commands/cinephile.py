"""Cinephile: roll for a random movie still."""

from typing import List

from .random_embed import EmbedEntry, RandomEmbedCommand


class CinephileCommand(RandomEmbedCommand):
    name = "Cinephile"
    description = (
        "Roll the dice and come up craps! See if you can get the photo "
        "you were hoping for, or set the tone!"
    )

    def default_entries(self) -> List[EmbedEntry]:
        return [
            EmbedEntry(
                title="Movie 1",
                description="A dark film of adventure and friendship.",
                image_file_name="image1.png",
            ),
            EmbedEntry(
                title="Movie 2",
                description="An epic tale of adventure and heroism.",
                image_file_name="image2.png",
            ),
            EmbedEntry(
                title="Movie 3",
                description="A classic film that never gets old.",
                image_file_name="image3.png",
            ),
        ]
