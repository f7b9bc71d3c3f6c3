""" Programs: the ordered instruction lists narrative nodes run.

Programs are authored data and read-only at execution time. Each instruction
and reward variant owns its dict form, keyed by a "kind" discriminator, so
programs can round trip through toml/json authoring files.
"""

import abc
import enum
import dataclasses
from typing import Any, Optional, ClassVar, TYPE_CHECKING
from collections.abc import Mapping, Sequence

import numpy as np
import numpy.typing as npt

from stagehand import util
from .base import Archetype

if TYPE_CHECKING:
    from stagehand.runner import Runner

class InstructionKind(enum.Enum):
    DIALOGUE = enum.auto()
    ACTOR_ACTION = enum.auto()
    BACKGROUND_ACTION = enum.auto()
    CHOICE = enum.auto()
    LABEL = enum.auto()
    JUMP = enum.auto()
    AUDIO = enum.auto()
    END_OF_PROGRAM = enum.auto()
    CAMERA_ACTION = enum.auto()
    SCREEN_EFFECT = enum.auto()
    TRIGGER_OTHER_RUNNER = enum.auto()

class ActorPosition(enum.Enum):
    LEFT = enum.auto()
    CENTER = enum.auto()
    RIGHT = enum.auto()

class ActorActionType(enum.Enum):
    SHOW = enum.auto()
    HIDE = enum.auto()
    CHANGE_EXPRESSION = enum.auto()

class BackgroundActionType(enum.Enum):
    SHOW = enum.auto()
    HIDE = enum.auto()

class BackgroundType(enum.Enum):
    IMAGE = enum.auto()
    VIDEO = enum.auto()

class AudioActionType(enum.Enum):
    PLAY = enum.auto()
    STOP = enum.auto()

class SoundType(enum.Enum):
    BGM = enum.auto()
    SFX = enum.auto()

class CameraActionType(enum.Enum):
    SWITCH_TO = enum.auto()
    ZOOM = enum.auto()
    SHAKE = enum.auto()
    RESET = enum.auto()

class ScreenEffectType(enum.Enum):
    FADE_IN = enum.auto()
    FADE_OUT = enum.auto()
    FLASH = enum.auto()
    TINT = enum.auto()

def _name(e:enum.Enum) -> str:
    return e.name.lower()

def _require(data:Mapping[str, Any], key:str) -> Any:
    try:
        return data[key]
    except KeyError as ke:
        raise ValueError(f'{data.get("kind", "item")} is missing required key "{key}"') from ke

def rgba(values:Optional[Sequence[float]]=None) -> npt.NDArray[np.float64]:
    """ RGBA color, components in [0,1]. defaults to opaque black """
    if values is None:
        return np.array((0.0, 0.0, 0.0, 1.0))
    c = np.array(values, dtype=np.float64)
    if c.shape == (3,):
        c = np.append(c, 1.0)
    if c.shape != (4,):
        raise ValueError(f'colors need 3 or 4 components, got {values!r}')
    return np.clip(c, 0.0, 1.0)

# Rewards

_REWARD_TYPES:dict[str, type["Reward"]] = {}

class Reward(abc.ABC):
    """ Something granted when a program finishes without branching. """

    kind:ClassVar[str]

    def __init_subclass__(cls, **kwargs:Any) -> None:
        super().__init_subclass__(**kwargs)
        if "kind" in cls.__dict__:
            _REWARD_TYPES[cls.kind] = cls

    @abc.abstractmethod
    def grant(self, runner:"Runner") -> None: ...

    @abc.abstractmethod
    def to_dict(self) -> dict[str, Any]: ...

    @staticmethod
    def from_dict(data:Mapping[str, Any]) -> "Reward":
        kind = _require(data, "kind")
        if kind not in _REWARD_TYPES:
            raise ValueError(f'unknown reward kind "{kind}", expected one of {util.human_list(_REWARD_TYPES)}')
        return _REWARD_TYPES[kind]._from_dict(data)

    @classmethod
    @abc.abstractmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "Reward": ...

@dataclasses.dataclass(frozen=True)
class ChangeStatReward(Reward):
    kind:ClassVar[str] = "change_stat"

    stat:str
    amount:int

    def __str__(self) -> str:
        return f'{self.stat} {self.amount:+}'

    def grant(self, runner:"Runner") -> None:
        runner.controller.collaborators.stats.change_stat(self.stat, self.amount)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "stat": self.stat, "amount": self.amount}

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "ChangeStatReward":
        return cls(str(_require(data, "stat")), int(_require(data, "amount")))

# Instructions

_INSTRUCTION_TYPES:dict[InstructionKind, type["Instruction"]] = {}

class Instruction(abc.ABC):
    kind:ClassVar[Optional[InstructionKind]] = None

    def __init_subclass__(cls, **kwargs:Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.__dict__.get("kind") is not None:
            _INSTRUCTION_TYPES[cls.kind] = cls # type: ignore[index]

    @property
    def kind_name(self) -> str:
        assert self.kind
        return _name(self.kind)

    @abc.abstractmethod
    def to_dict(self) -> dict[str, Any]: ...

    @staticmethod
    def from_dict(data:Mapping[str, Any]) -> "Instruction":
        """ builds the instruction variant named by data["kind"]

        an unrecognized kind produces an UnknownInstruction so the rest of the
        program still loads. a recognized kind with bad fields raises
        ValueError. """

        kind_name = _require(data, "kind")
        try:
            kind = util.enum_from_name(InstructionKind, kind_name)
        except ValueError:
            return UnknownInstruction(str(kind_name), dict(data))
        return _INSTRUCTION_TYPES[kind]._from_dict(data)

    @classmethod
    @abc.abstractmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "Instruction": ...

@dataclasses.dataclass(frozen=True)
class UnknownInstruction(Instruction):
    """ placeholder for an instruction kind we don't know how to run """

    kind_name_raw:str
    data:Mapping[str, Any] = dataclasses.field(default_factory=dict, compare=False, hash=False)

    @property
    def kind_name(self) -> str:
        return self.kind_name_raw

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "UnknownInstruction":
        return cls(str(data.get("kind", "")), dict(data))

@dataclasses.dataclass(frozen=True)
class Dialogue(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.DIALOGUE

    character_id:str
    text:str
    expression:str = ""
    position:ActorPosition = ActorPosition.CENTER
    clear_all_characters:bool = False
    show_character:bool = True
    # only used by cinematic text, None means use the configured default
    cinematic_anim_duration:Optional[float] = None
    cinematic_display_duration:Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        d:dict[str, Any] = {
            "kind": self.kind_name,
            "character": self.character_id,
            "text": self.text,
            "expression": self.expression,
            "position": _name(self.position),
            "clear_all_characters": self.clear_all_characters,
            "show_character": self.show_character,
        }
        if self.cinematic_anim_duration is not None:
            d["anim_duration"] = self.cinematic_anim_duration
        if self.cinematic_display_duration is not None:
            d["display_duration"] = self.cinematic_display_duration
        return d

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "Dialogue":
        anim = data.get("anim_duration")
        display = data.get("display_duration")
        return cls(
            character_id=str(data.get("character", "")),
            text=str(_require(data, "text")),
            expression=str(data.get("expression", "")),
            position=util.enum_from_name(ActorPosition, data.get("position", "center")),
            clear_all_characters=bool(data.get("clear_all_characters", False)),
            show_character=bool(data.get("show_character", True)),
            cinematic_anim_duration=float(anim) if anim is not None else None,
            cinematic_display_duration=float(display) if display is not None else None,
        )

@dataclasses.dataclass(frozen=True)
class ActorAction(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.ACTOR_ACTION

    character_id:str
    action:ActorActionType
    position:ActorPosition = ActorPosition.CENTER
    expression:str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind_name,
            "character": self.character_id,
            "action": _name(self.action),
            "position": _name(self.position),
            "expression": self.expression,
        }

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "ActorAction":
        return cls(
            character_id=str(_require(data, "character")),
            action=util.enum_from_name(ActorActionType, _require(data, "action")),
            position=util.enum_from_name(ActorPosition, data.get("position", "center")),
            expression=str(data.get("expression", "")),
        )

@dataclasses.dataclass(frozen=True)
class BackgroundAction(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.BACKGROUND_ACTION

    action:BackgroundActionType
    background_type:BackgroundType = BackgroundType.IMAGE
    asset:str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind_name,
            "action": _name(self.action),
            "background_type": _name(self.background_type),
            "asset": self.asset,
        }

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "BackgroundAction":
        return cls(
            action=util.enum_from_name(BackgroundActionType, _require(data, "action")),
            background_type=util.enum_from_name(BackgroundType, data.get("background_type", "image")),
            asset=str(data.get("asset", "")),
        )

@dataclasses.dataclass(frozen=True)
class ChoiceOption:
    text:str
    target_label:str

@dataclasses.dataclass(frozen=True)
class Choice(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.CHOICE

    options:tuple[ChoiceOption, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind_name,
            "options": [{"text": o.text, "target": o.target_label} for o in self.options],
        }

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "Choice":
        return cls(tuple(
            ChoiceOption(str(_require(o, "text")), str(o.get("target", "")))
            for o in _require(data, "options")
        ))

@dataclasses.dataclass(frozen=True)
class Label(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.LABEL

    name:str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind_name, "name": self.name}

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "Label":
        return cls(str(_require(data, "name")))

@dataclasses.dataclass(frozen=True)
class Jump(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.JUMP

    target_label:str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind_name, "target": self.target_label}

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "Jump":
        return cls(str(_require(data, "target")))

@dataclasses.dataclass(frozen=True)
class Audio(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.AUDIO

    action:AudioActionType
    sound_type:SoundType = SoundType.BGM
    clip:str = ""
    volume:float = 1.0
    loop:bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind_name,
            "action": _name(self.action),
            "sound_type": _name(self.sound_type),
            "clip": self.clip,
            "volume": self.volume,
            "loop": self.loop,
        }

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "Audio":
        return cls(
            action=util.enum_from_name(AudioActionType, _require(data, "action")),
            sound_type=util.enum_from_name(SoundType, data.get("sound_type", "bgm")),
            clip=str(data.get("clip", "")),
            volume=float(data.get("volume", 1.0)),
            loop=bool(data.get("loop", False)),
        )

@dataclasses.dataclass(frozen=True)
class EndOfProgram(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.END_OF_PROGRAM

    rewards:tuple[Reward, ...] = ()
    is_branching:bool = False
    target_node_id:str = ""

    def to_dict(self) -> dict[str, Any]:
        d:dict[str, Any] = {"kind": self.kind_name}
        if self.rewards:
            d["rewards"] = [r.to_dict() for r in self.rewards]
        if self.is_branching:
            d["branch_to"] = self.target_node_id
        return d

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "EndOfProgram":
        target = data.get("branch_to")
        return cls(
            rewards=tuple(Reward.from_dict(r) for r in data.get("rewards", ())),
            is_branching=bool(target),
            target_node_id=str(target or ""),
        )

@dataclasses.dataclass(frozen=True)
class CameraAction(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.CAMERA_ACTION

    action:CameraActionType
    target_camera:str = ""
    duration:float = 1.0
    target_fov:float = 60.0
    shake_intensity:float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind_name,
            "action": _name(self.action),
            "camera": self.target_camera,
            "duration": self.duration,
            "fov": self.target_fov,
            "intensity": self.shake_intensity,
        }

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "CameraAction":
        return cls(
            action=util.enum_from_name(CameraActionType, _require(data, "action")),
            target_camera=str(data.get("camera", "")),
            duration=float(data.get("duration", 1.0)),
            target_fov=float(data.get("fov", 60.0)),
            shake_intensity=float(data.get("intensity", 1.0)),
        )

@dataclasses.dataclass(frozen=True)
class ScreenEffect(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.SCREEN_EFFECT

    effect:ScreenEffectType
    duration:float = 1.0
    color:npt.NDArray[np.float64] = dataclasses.field(default_factory=rgba, compare=False, hash=False)
    flash_hold_duration:float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind_name,
            "effect": _name(self.effect),
            "duration": self.duration,
            "color": [float(x) for x in self.color],
            "hold": self.flash_hold_duration,
        }

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "ScreenEffect":
        return cls(
            effect=util.enum_from_name(ScreenEffectType, _require(data, "effect")),
            duration=float(data.get("duration", 1.0)),
            color=rgba(data.get("color")),
            flash_hold_duration=float(data.get("hold", 0.0)),
        )

@dataclasses.dataclass(frozen=True)
class TriggerOtherRunner(Instruction):
    kind:ClassVar[Optional[InstructionKind]] = InstructionKind.TRIGGER_OTHER_RUNNER

    target_runner_id:str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind_name, "runner": self.target_runner_id}

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "TriggerOtherRunner":
        return cls(str(_require(data, "runner")))

@dataclasses.dataclass(frozen=True)
class Program:
    """ An immutable, ordered list of instructions for one narrative event.

    instructions may hold None entries (e.g. a null slot in authoring data).
    the interpreter skips those. """

    program_id:str
    archetype:Archetype
    instructions:tuple[Optional[Instruction], ...]

    def __post_init__(self) -> None:
        if not isinstance(self.instructions, tuple):
            object.__setattr__(self, "instructions", tuple(self.instructions))

    def __len__(self) -> int:
        return len(self.instructions)

    def __getitem__(self, i:int) -> Optional[Instruction]:
        return self.instructions[i]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.program_id,
            "archetype": _name(self.archetype),
            "instructions": [i.to_dict() if i is not None else {} for i in self.instructions],
        }

    @staticmethod
    def from_dict(data:Mapping[str, Any]) -> "Program":
        instructions:list[Optional[Instruction]] = []
        for i in data.get("instructions", ()):
            # empty tables stand in for null since toml has none
            if not i:
                instructions.append(None)
            else:
                instructions.append(Instruction.from_dict(i))
        return Program(
            str(_require(data, "id")),
            util.enum_from_name(Archetype, data.get("archetype", "generic")),
            tuple(instructions),
        )
