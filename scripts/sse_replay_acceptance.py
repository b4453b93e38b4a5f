"""SSE replay acceptance checks (no server required).

Replays a captured chat event stream through the decoder, the reply reducer
and artifact extraction, and asserts that:
- the frame sequence does not depend on how the bytes were chunked
- the finished message is identical for every chunking
- every artifact link appears exactly once (media, documents or text)

Usage:
    python scripts/sse_replay_acceptance.py [capture.sse]

Without an argument a built-in capture is used.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure repository root is importable when running as script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from promomo.schemas.chat import Frame, Message
from promomo.services.message_builder import build_assistant_message
from promomo.services.reply_assembler import assemble
from promomo.services.sse_decoder import FrameDecoder

SAMPLE_CAPTURE = (
    'event: start\ndata: {"conversationId": "65f0c0ffee0000000000cafe"}\n\n'
    'event: tool_call\ndata: {"name": "generate_campaign_videos", "args": {}}\n\n'
    'event: tool_result\ndata: {"name": "generate_campaign_videos", "result": '
    '{"contents": [{"type": "video", "driveLink": "https://drive.google.com/file/d/XYZ/view", '
    '"title": "Promo"}]}}\n\n'
    'event: chunk\ndata: {"content": "Aqui está o vídeo da campanha 🎬:\\n"}\n\n'
    'event: chunk\ndata: {"content": "[Assistir vídeo](https://drive.google.com/file/d/XYZ/view)\\n"}\n\n'
    'event: chunk\ndata: {"content": "E a imagem: [Ver Imagem](https://drive.google.com/file/d/ABC123/view)\\n"}\n\n'
    'event: chunk\ndata: {"content": "Mais em [site](https://example.com)"}\n\n'
    'event: done\ndata: {"toolsUsed": ["generate_campaign_videos"]}\n\n'
)

CHUNK_SIZES = (1, 3, 7, 64, None)


def _decode(raw: bytes, size: int | None) -> list[Frame]:
    decoder = FrameDecoder()
    frames: list[Frame] = []
    if size is None:
        frames.extend(decoder.feed(raw))
    else:
        for start in range(0, len(raw), size):
            frames.extend(decoder.feed(raw[start:start + size]))
    frames.extend(decoder.close())
    return frames


def _message(frames: list[Frame]) -> Message:
    return build_assistant_message(assemble(frames), message_id="replay", timestamp=None)


def _assert_links_once(message: Message) -> None:
    links = [media.id for media in message.extracted_media]
    links += [doc.source_link for doc in message.extracted_documents if doc.source_link]
    assert len(links) == len(set(links)), f"duplicated artifact links: {links}"
    for link in links:
        assert link not in message.cleaned_text, f"artifact link left in text: {link}"


def run(raw: bytes) -> Message:
    reference_frames = _decode(raw, None)
    assert reference_frames, "capture produced no frames"
    reference = _message(reference_frames)

    for size in CHUNK_SIZES:
        frames = _decode(raw, size)
        assert frames == reference_frames, f"frames differ with chunk size {size}"
        message = _message(frames)
        assert message.model_dump(exclude={"timestamp"}) == reference.model_dump(
            exclude={"timestamp"}
        ), f"message differs with chunk size {size}"

    _assert_links_once(reference)
    return reference


def main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    raw = Path(argv[0]).read_bytes() if argv else SAMPLE_CAPTURE.encode("utf-8")

    message = run(raw)
    print(
        f"SSE replay checks passed: {len(message.extracted_media)} media, "
        f"{len(message.extracted_documents)} documents, "
        f"{len(message.cleaned_text.splitlines())} text lines."
    )


if __name__ == "__main__":
    main()
