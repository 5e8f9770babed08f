# facegate

facegate is a library for a face-recognition sign-in station. It starts a
camera stream, grabs single frames from that stream on demand, sends them
to a cloud face-search service and walks a welcome screen model through
its states: idle, scanning, success (greeting the recognised user) or
error (offering a retry).

## Requirements

- Python 3.10 or later
- `rpicam-vid` on the `PATH` for the camera stream
- `ffmpeg` on the `PATH` for capturing photos from the stream
- An API key and secret key for the face-recognition service

## Face recognition client

```python
import requests

from facegate.faceid import FaceIdClient, FaceIdError, load_image_as_bytes

client = FaceIdClient(api_key="placeholder", secret_key="secret", session=requests.Session())

client.login(
    load_image_as_bytes("/tmp/face_capture.jpg"),
    on_success=lambda user_id: print("welcome back,", user_id),
    on_failed=lambda error: print("login failed:", error),
)

client.check_id_exist("alice", on_result=lambda exists: print("known:", exists))
```

`FaceIdClient` fetches an access token when it is created and refreshes it
when it is missing or expired. Failing to obtain a token on creation raises
`FaceIdError`; later calls report a missing token through their callbacks.
`login` accepts either image bytes or a file path, and succeeds only when
the best match scores above 80. `register_user`, `check_id_exist` and
`check_face_exist` work on the same group of faces. The helpers
`base64_encode`, `url_encode` and `load_image_as_bytes` are available on
their own.

## Camera and photo capture

```python
from facegate.base import Base

base = Base.instance()
base.register_atexit()
base.start_camera_stream()

base.capture_photo_async(
    "/tmp/face_capture.jpg",
    lambda ok, filename: print("captured" if ok else "capture failed", filename),
)
```

`register_atexit` stops the camera stream when the interpreter exits;
`stop_camera_stream` does so at any time. `capture_photo_async` runs in a
background thread and returns it. `get_font(size)` caches one font object
per size and `clear_fonts` releases them.

`camera_stream_command(url)` and `capture_photo_command(url, filename)`
return the exact argument lists used to start the external programs.

## Backends

`BackendRegistry` (in `facegate.backends`) holds display and input
backends built from the factories given to `register`. The first
registered backend is the default; a display backend must be initialised
before an input backend, `is_supported` matches names in any case,
`print_supported` lists them all and `run_loop` enters the selected
display backend's loop. Errors are raised as `BackendError`.

## Welcome flow

`WelcomeFlow` (in `facegate.welcome`) holds the sign-in screen's state
machine and `WelcomeView` (in `facegate.layout`) its widget geometry and
running animations. The helpers in `facegate.layout` — `panel_widths`,
`camera_slide`, `try_again_slide` and `exit_animations` — give the
`Animation` values the screen uses when panels swap, the camera view
slides in or out, the retry button appears and the screen is left after a
successful sign-in. `WelcomeView.finish_all` completes the running
animations and fires their callbacks.

## What it does not do

- There is no command-line program; the pieces are wired together in
  your own code.
- Nothing is drawn on a real display. `WelcomeView` is a headless model
  of the screen, and no display or input drivers are included: the
  backends in a `BackendRegistry` are only those you supply.