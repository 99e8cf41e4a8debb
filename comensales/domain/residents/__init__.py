"""Resident records: weekly selection, exceptions, absences, restrictions."""
