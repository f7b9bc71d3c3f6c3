""" Save files for controller snapshots.

Two encodings of the same records: JSON (dumps/loads) for tooling and
debugging, and a compact binary file written by GameSaver.
"""

import io
import os
import glob
import json
import time
import datetime
import logging
import tempfile
import contextlib
from typing import Optional, TYPE_CHECKING
from collections.abc import Sequence

from stagehand import util
from stagehand.core import Status
from stagehand.serialization import util as s_util
from stagehand.serialization.state import NodeState, RunnerState

if TYPE_CHECKING:
    from stagehand.controller import Controller

MAGIC = b"STGH"

def dumps(states:Sequence[RunnerState], indent:Optional[int]=None) -> str:
    return json.dumps([s.to_record() for s in states], indent=indent)

def loads(data:str) -> list[RunnerState]:
    records = json.loads(data)
    if not isinstance(records, list):
        raise ValueError(f'expected a list of runner state records, got {type(records).__name__}')
    return [RunnerState.from_record(r) for r in records]

def save_states(states:Sequence[RunnerState], f:io.IOBase) -> int:
    bytes_written = 0
    bytes_written += s_util.size_to_f(len(states), f)
    for state in states:
        bytes_written += s_util.to_len_pre_f(state.runner_id, f)
        bytes_written += s_util.to_len_pre_f(state.storyboard_name, f)
        bytes_written += s_util.size_to_f(len(state.node_states), f)
        for ns in state.node_states:
            bytes_written += s_util.to_len_pre_f(ns.node_id, f)
            bytes_written += s_util.int_to_f(int(ns.status), f, blen=1)
    return bytes_written

def load_states(f:io.IOBase) -> list[RunnerState]:
    states = []
    count = s_util.size_from_f(f)
    for _ in range(count):
        runner_id = s_util.from_len_pre_f(f)
        storyboard_name = s_util.from_len_pre_f(f)
        node_count = s_util.size_from_f(f)
        node_states = []
        for _ in range(node_count):
            node_id = s_util.from_len_pre_f(f)
            status = Status(s_util.int_from_f(f, blen=1))
            node_states.append(NodeState(node_id, status))
        states.append(RunnerState(runner_id, storyboard_name, tuple(node_states)))
    return states

class SaveGame:
    def __init__(self, debug_flag:bool, save_date:datetime.datetime, ticks:int, filename:str=""):
        self.debug_flag = debug_flag
        self.save_date = save_date
        self.ticks = ticks
        self.filename = filename

class GameSaver:
    """ Writes and reads controller snapshots as binary save files. """

    def __init__(self, save_path:Optional[str]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.debug = True
        self._save_path = save_path or os.path.join(tempfile.gettempdir(), "stagehand_saves")
        self._save_file_glob = "save_*.stgh"

    def _gen_save_filename(self) -> str:
        return f'save_{time.time()}.stgh'

    def _save_metadata(self, ticks:int, f:io.IOBase) -> int:
        bytes_written = 0
        bytes_written += f.write(MAGIC)
        bytes_written += s_util.bool_to_f(self.debug, f)
        bytes_written += s_util.to_len_pre_f(datetime.datetime.now().isoformat(), f)
        bytes_written += s_util.int_to_f(ticks, f)
        return bytes_written

    def _load_metadata(self, f:io.IOBase) -> SaveGame:
        magic = f.read(len(MAGIC))
        if magic != MAGIC:
            raise ValueError(f'not a save file, bad header {magic!r}')
        debug_flag = s_util.bool_from_f(f)
        save_date = datetime.datetime.fromisoformat(s_util.from_len_pre_f(f))
        ticks = s_util.int_from_f(f)
        return SaveGame(debug_flag, save_date, ticks)

    def write(self, states:Sequence[RunnerState], f:io.IOBase, ticks:int=0) -> int:
        bytes_written = self._save_metadata(ticks, f)
        if self.debug:
            bytes_written += s_util.debug_string_w("runners", f)
        bytes_written += save_states(states, f)
        return bytes_written

    def read(self, f:io.IOBase) -> tuple[SaveGame, list[RunnerState]]:
        save_game = self._load_metadata(f)
        if save_game.debug_flag:
            s_util.debug_string_r("runners", f)
        return save_game, load_states(f)

    def save(self, controller:"Controller", save_filename:Optional[str]=None) -> str:
        self.logger.info("saving...")
        start_time = time.perf_counter()

        if save_filename is None:
            os.makedirs(self._save_path, exist_ok=True)
            save_filename = os.path.join(self._save_path, self._gen_save_filename())

        states = controller.capture_all_state()
        bytes_written = 0
        save_dir = os.path.dirname(os.path.abspath(save_filename))
        with contextlib.ExitStack() as context_stack:
            temp_save_file = context_stack.enter_context(tempfile.NamedTemporaryFile("wb", dir=save_dir, delete=False))
            self.logger.debug(f'saving to temp file {temp_save_file.name}')
            save_file:io.IOBase = temp_save_file # type: ignore
            try:
                bytes_written += self.write(states, save_file, ticks=controller.ticks)
                save_file.flush()
            except Exception:
                self.logger.error(f'failed to write save, removing {temp_save_file.name}')
                temp_save_file.close()
                os.remove(temp_save_file.name)
                raise
            # move the temp file into final home, so we only end up with good files
            os.replace(temp_save_file.name, save_filename)

        self.logger.info(f'saved {bytes_written}bytes to {save_filename} in {time.perf_counter()-start_time}s')
        return save_filename

    def load(self, save_filename:str, save_file:Optional[io.IOBase]=None) -> list[RunnerState]:
        self.logger.info(f'loading {save_filename}')
        with contextlib.ExitStack() as context_stack:
            if save_file is None:
                save_file = context_stack.enter_context(open(save_filename, "rb"))
            save_game, states = self.read(save_file)
        self.logger.info(f'loaded {len(states)} runners saved {save_game.save_date} at tick {save_game.ticks}')
        return states

    def list_save_games(self) -> list[SaveGame]:
        save_games = []
        for x in glob.glob(os.path.join(self._save_path, self._save_file_glob)):
            with open(x, "rb") as f:
                save_game = self._load_metadata(f)
                save_game.filename = x
                save_games.append(save_game)
        save_games.sort(key=lambda x: x.save_date, reverse=True)
        return save_games
