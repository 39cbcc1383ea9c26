"""
Custom exceptions for the Addon Compatibility Validator.
"""


class AddonValidatorError(Exception):
    """Base exception class for all Addon Validator errors."""
    pass


class CatalogError(AddonValidatorError):
    """Raised when the addon catalog cannot be loaded."""
    
    def __init__(self, message: str, file_path: str = None):
        self.file_path = file_path
        
        if file_path:
            message = f"Catalog error in '{file_path}': {message}"
        
        super().__init__(message)


class ConfigurationError(AddonValidatorError):
    """Raised when configuration is invalid."""
    pass


class FetchError(AddonValidatorError):
    """Raised when a remote document cannot be fetched."""
    
    def __init__(self, message: str, url: str = None, status_code: int = None):
        self.url = url
        self.status_code = status_code
        
        if url:
            message = f"Fetch error for '{url}': {message}"
        
        super().__init__(message)


class URLPolicyError(FetchError):
    """Raised when a URL is rejected by the public HTTPS URL policy."""
    pass


class InterpretationError(AddonValidatorError):
    """Raised by interpretation collaborators when no verdict can be produced."""
    
    def __init__(self, message: str, addon_name: str = None):
        self.addon_name = addon_name
        
        if addon_name:
            message = f"Interpretation error for '{addon_name}': {message}"
        
        super().__init__(message)
