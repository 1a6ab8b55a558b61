from .generated import Appointments, Base, SalonSettings, metadata

__all__ = ["Appointments", "Base", "SalonSettings", "metadata"]
