""" Stagehand: a tick-driven scheduler and interpreter for branching narrative
events. """

from ._version import version as __version__
from .controller import Controller
from .runner import Runner
from .loader import Scenario
