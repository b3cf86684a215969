from .base import Base
from .controller import ControllerModel
from .student import StudentModel

__all__ = ["Base", "ControllerModel", "StudentModel"]
