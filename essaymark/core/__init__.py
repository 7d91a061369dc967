"""
Core editing logic: geometry, annotations, interaction, imaging, sessions and export.
"""
