from model_conductor.ui.selector import SelectionCancelled, SelectionSession, TerminalSelector

__all__ = ["SelectionCancelled", "SelectionSession", "TerminalSelector"]
