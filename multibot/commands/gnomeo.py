"""Gnomeo: a random quote card."""

from typing import List

from .random_embed import EmbedEntry, RandomEmbedCommand


class GnomeoCommand(RandomEmbedCommand):
    name = "Gnomeo"
    description = "Gnomeo."
    embed_color = (22, 44, 115)

    def default_entries(self) -> List[EmbedEntry]:
        quotes = [
            ("Nice name. It really goes with your...eyes.", "gnomeo1.png"),
            ("Well, I grabbed it first, but if you want it, come get it.", "gnomeo2.png"),
            ("Who's your gnomie?", "gnomeo3.png"),
            ("Well, this isn't my greenhouse.", "gnomeo4.png"),
            ("Nice greenhouse, eh?", "gnomeo5.png"),
        ]
        return [
            EmbedEntry(title="Gnomeo", description=quote, image_file_name=image)
            for quote, image in quotes
        ]
