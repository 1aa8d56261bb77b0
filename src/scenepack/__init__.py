"""scenepack - script-to-scenes content production assistant."""

__version__ = "0.1.0"
