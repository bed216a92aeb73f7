class ZsignError(Exception):
    """Base class for zsign wrapper errors"""
    pass

class UnsupportedPlatformError(ZsignError):
    """No zsign binary is shipped for this operating system"""
    def __init__(self, system):
        self.system = system
        super().__init__(f"OS type not supported: no zsign binary for '{system}'")

class UnsupportedArchitectureError(ZsignError):
    """No zsign binary is shipped for this CPU architecture"""
    def __init__(self, machine):
        self.machine = machine
        super().__init__(f"Arch not supported: no zsign binary for '{machine}'")

class BinaryNotFoundError(ZsignError):
    """The binary for a supported OS/arch combination is missing on disk"""
    def __init__(self, path):
        self.path = path
        super().__init__(f"Binary not found: no zsign binary for this OS/arch combination ({path})")
