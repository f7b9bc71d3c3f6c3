from .core import Interpreter, InterpreterObserver, ProgramRun
from . import handlers
