"""
Hygeia Medicine Safety Gateway

Medicine package authenticity checks and allergy safety verdicts.
"""
__version__ = "1.0.0"
