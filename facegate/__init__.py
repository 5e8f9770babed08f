"""Face ID sign-in station library: camera streaming, photo capture, cloud face recognition and a headless welcome-screen model."""

__version__ = "0.1.0"