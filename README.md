# moondream

An asynchronous client for the Moondream vision API, with a small command line
on top. It can point at objects, detect bounding boxes, caption images and
answer questions about them, against either the hosted service or a local
deployment.

## Installation

```
pip install moondream
```

## Using the client

The client lives in `moondream.client`. Images are passed as URLs, usually
`data:` URLs holding the base64-encoded image bytes.

```python
import asyncio
import os

from moondream.client import CaptionLength, MoonDream, MoonDreamError


async def run() -> None:
    client = MoonDream.remote(os.environ["MOONDREAM_API_KEY"])
    image = "data:image/jpeg;base64,..."

    try:
        answer = await client.query(image, "What is shown in this image?")
        print(answer.answer)

        caption = await client.caption(image, CaptionLength.SHORT)
        print(caption.caption)

        detected = await client.detect(image, "avocado")
        for box in detected.objects:
            print(box.x_min, box.y_min, box.x_max, box.y_max)

        pointed = await client.points(image, "avocado")
        for point in pointed.points:
            print(point.x, point.y)
    except MoonDreamError as exc:
        print(f"request failed: {exc}")


asyncio.run(run())
```

For a self-hosted server that needs no authentication, build the client with
the server's endpoint instead:

```python
client = MoonDream.local("http://localhost:2020/v1")
```

`MoonDream` is a frozen dataclass with the fields `token`, `endpoint`
(default `https://api.moondream.ai/v1`), `headers` (extra request headers as
pairs), `timeout` (seconds, default 5) and `client` (an optional
`httpx.AsyncClient` to reuse; otherwise one is opened per request). Change
settings with `dataclasses.replace`:

```python
import dataclasses

client = dataclasses.replace(MoonDream.remote("token"), timeout=10.0)
```

The token is sent in the `X-Moondream-Auth` header; a local client sends it
empty.

`MoonDream.caption` takes an image and a `CaptionLength` (or the string
`"short"` or `"normal"`); when no length is given the caption is of normal
length.

Responses are the dataclasses `PointsResponse`, `DetectResponse`,
`CaptionResponse` and `QueryResponse`, each with an optional `request_id`.
Coordinates in `Point` and `DetectionObject` are normalised to the image size
(0 to 1); multiply by the image's width and height to get pixels. Every
response class has a `from_dict` class method for building it from decoded
JSON.

Any transport failure, timeout, non-success HTTP status, invalid JSON body or
response that lacks a required field is raised as `MoonDreamError`.

## Command line

The package installs a `moondream` command with four sub-commands:

```
moondream caption IMAGE [--length {short,normal}]
moondream detect IMAGE OBJECT
moondream points IMAGE OBJECT
moondream query IMAGE QUESTION
```

`IMAGE` is an image file, whose type is guessed from its extension and which is
sent as a base64 `data:` URL, or a `data:` URL given as is. The result is
printed as indented JSON.

Global options, given before the sub-command:

- `--token`: API token; defaults to the `MOONDREAM_API_KEY` environment variable.
- `--endpoint`: base URL; defaults to `MOONDREAM_ENDPOINT`, else the service default.
- `--local`: use an unauthenticated local service, by default at
  `http://localhost:2020/v1`.
- `--timeout`: request timeout in seconds (default 5).

A failed request prints the error and exits with status 1. See all options
with:

```
moondream --help
```

## Running the tests

```
pip install -e ".[test]"
pytest
```