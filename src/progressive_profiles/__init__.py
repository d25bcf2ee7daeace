"""
Progressive Profiles

Consolidates independent parent/teacher/student assessments of a child into one
learning profile, and derives risk factors, seating compatibility, classroom
analytics and progress trends from the consolidated scores.
"""

__version__ = "0.1.0"
