""" Stagehand core data model """

from .base import Status, Archetype, Counters, Observer, Observable
from .program import (
    InstructionKind, Instruction, UnknownInstruction, Dialogue, ActorAction, BackgroundAction,
    ChoiceOption, Choice, Label, Jump, Audio, EndOfProgram, CameraAction, ScreenEffect,
    TriggerOtherRunner, Program, Reward, ChangeStatReward,
    ActorPosition, ActorActionType, BackgroundActionType, BackgroundType,
    AudioActionType, SoundType, CameraActionType, ScreenEffectType,
)
from .condition import Condition, AreaEnteredCondition, InteractionTriggeredCondition, PreviousNodeCompletedCondition
from .storyboard import NarrativeNode, Storyboard
from .character import CharacterData, CharacterDatabase
from .waits import Wait, Delay, WaitUntil, NextTick
