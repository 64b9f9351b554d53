"""Packaged reference data: the clause/template library and the control catalog."""
