"""
Controller Layer
Manages application flow and state transitions.
"""

from .behavior_controller import BehaviorController, SystemState
from .inspection_driver import InspectionDriver, InspectionStatistics
from .app_controller import ApplicationController

__all__ = [
    'BehaviorController', 'SystemState',
    'InspectionDriver', 'InspectionStatistics',
    'ApplicationController'
]
