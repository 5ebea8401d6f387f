"""TCHJR: movie stills, garden gnomes and IMDb roulette."""

from typing import List

from ..bot import Bot, CommandFactory
from ..commands.cinephile import CinephileCommand
from ..commands.gnomeo import GnomeoCommand
from ..commands.random_imdb import RandomImdbCommand


class TCHJRBot(Bot):
    name = "TCHJR"

    def command_factories(self) -> List[CommandFactory]:
        return [CinephileCommand, GnomeoCommand, RandomImdbCommand]
