# dofun

Frame processing for still images and video. It provides a cartoon effect, a
subject-sharpening blur, a set of classic smoothing filters, and the
post-processing stage of a YOLACT instance-segmentation model. That stage
covers prior boxes, box decoding, per-class non-maximum suppression, mask
assembly and drawing.

Images are NumPy `uint8` arrays in BGR channel order. Colour images have the
shape `(height, width, 3)` and grey images `(height, width)`.

## Installation

```
pip install .
```

To include the test dependencies:

```
pip install ".[test]"
```

## Command line

```
dofun --help
```

```
dofun SOURCE -o OUTPUT [--mode {picture,video,camera}] [--effect {normal,cartoon}]
      [--screen WIDTHxHEIGHT] [--max-frames N]
```

- `--mode picture` (the default) loads the picture at `SOURCE` and saves the
  displayed result to the file `OUTPUT`.
  - With `--effect normal`, a picture larger than 80% of the screen size is
    scaled down to fit. The screen size is set with `--screen` and defaults
    to `1920x1080`.
  - With `--effect cartoon`, the cartoon effect is applied to the loaded
    picture.
- `--mode video` opens the file at `SOURCE`.
- `--mode camera` treats `SOURCE` as a camera index.
- In video and camera mode, each frame in turn is written to the directory
  `OUTPUT` as `frame_00001.png`, `frame_00002.png` and so on. Writing stops
  when no more frames can be read, or after `--max-frames` frames.
- If a source cannot be opened or read, the command prints `dofun: <reason>`
  to standard error and exits with status 1.

## Library use

### Image operations

Low-level operations live in `dofun.imgops`:

```python
import numpy as np
from dofun import imgops

image = np.zeros((120, 160, 3), dtype=np.uint8)
gray = imgops.bgr_to_gray(image)
smooth = imgops.median_blur(gray, 7)
edges = imgops.laplacian(smooth, 5)
mask = imgops.threshold(edges, 80, 255, True)
half = imgops.resize(image, 80, 60)
```

The module also provides `bilateral_filter`, `box_blur`, `gaussian_blur` and
`filter2d`.

### Image conversion

`dofun.imageconv.image_to_array` and `array_to_image` convert between Pillow
images and BGR(A) arrays.

### Effects

The classes in `dofun.effects` work on whole frames:

```python
from dofun.effects import Cartoon, Blur, Filter, ImgAlgorithm

cartoon = Cartoon().cartoon_image(image)
sharpened = Blur().process(image)
box, gaussian, median, bilateral = Filter().process(image)
result = ImgAlgorithm().get_result(image)
```

- `Cartoon.process_frame` applies the cartoon effect to a Pillow image.
- `Blur.process` reads its input as RGB. It blurs the whole frame, then
  sharpens large dark regions whose outlines are not wider than half the
  frame.
- `Filter.process` labels each of its four results with the filter's name.

### Frame processors and viewer

- `dofun.processors.FrameProcessor` is the interface for frame processors.
- `dofun.processors.ModelProcessor(model, name)` passes each frame to
  `model.getresult(array, name)`. Without a model, frames pass through
  unchanged.
- A `dofun.viewer.Viewer` holds the frame currently shown.
  - In `DisplayMode.NORMAL` it shows frames as they are.
  - `set_stub` installs a frame processor and switches the viewer to
    `DisplayMode.PROCESS`.

### Models

`dofun.models` provides:

- `Model`, the model interface.
- `ModelRegistry`, with `register`, `create` and `names`.
- `default_registry()`, which registers `"yolact"`.
- `DLCV`, which creates a model from a registry by name and runs it on an
  image.

### YOLACT post-processing

`dofun.yolact.YolactModel(network)` takes a callable `network`.

- `network` receives the preprocessed `(3, 550, 550)` tensor.
- It must return `(maskmaps, location, mask_coeffs, confidence)`.

These functions can also be used on their own: `make_priors`, `preprocess`,
`decode_detections`, `sort_descending`, `nms_sorted_bboxes`,
`intersection_area` and `draw_objects`. Detections are `Detection` objects
holding a `Rect`.

### Video

`dofun.video.VideoProcess.get_instance()` returns the shared video source.
Its methods are `open`, `get_frame`, `set_current_frame`, `frame_total`,
`frame_rate` and `close`.

- Still and animated image files are read through Pillow.
- Other video files and cameras are read through imageio.
- A failure to open a source raises `VideoError`.

### Player

`dofun.player.Player` ties a video source and a viewer together. Its methods
are `open_picture`, `open_video`, `open_camera`, `play_next`, `toggle_play`,
`replay`, `seek`, `example_process`, `normal_display`, `model_display` and
`close`. `fit_to_screen` computes the displayed frame size for a given
screen.

## What this package does not do

- **No window.** There is no graphical window. `Player` keeps play/pause,
  slider and timer state, but nothing advances frames on a clock. The caller
  calls `play_next`, as the `dofun` command does.
- **No trained YOLACT network.** The package has no network and no model
  weights. A `YolactModel` created without a network, such as the one
  `default_registry()` registers under `"yolact"`, raises `RuntimeError`
  when it is asked for a result.
- **Limited video formats.** Reading video formats that Pillow cannot open,
  and reading cameras, depends on an imageio backend for that format being
  installed.

## Tests

```
pytest
```