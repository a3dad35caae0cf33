import json
import unittest

from translator.sse_parser import SSEStreamParser


def data_line(content=None, raw=None):
    if raw is not None:
        return f"data: {raw}\n"
    delta = {} if content is None else {"content": content}
    event = {"choices": [{"index": 0, "delta": delta}]}
    return f"data: {json.dumps(event, ensure_ascii=False)}\n"


STREAM = (
    ": keep-alive\n"
    + data_line(raw=json.dumps({"choices": [{"delta": {"role": "assistant"}}]}))
    + "\n"
    + data_line("你好")
    + "event: message\n"
    + data_line(raw="{not json")
    + data_line("，")
    + data_line("world 🌍")
    + data_line("")
    + "data: [DONE]\n"
    + data_line("after done")
).encode("utf-8")

EXPECTED = ["你好", "，", "world 🌍"]


def parse_chunks(chunks):
    parser = SSEStreamParser()
    deltas = []
    for chunk in chunks:
        deltas.extend(parser.feed(chunk))
    deltas.extend(parser.finish())
    return parser, deltas


class TestSSEStreamParser(unittest.TestCase):
    def test_whole_stream(self):
        parser, deltas = parse_chunks([STREAM])
        self.assertEqual(deltas, EXPECTED)
        self.assertEqual(parser.text, "你好，world 🌍")
        self.assertTrue(parser.done)

    def test_chunking_invariance_fixed_sizes(self):
        for size in range(1, 17):
            chunks = [STREAM[i : i + size] for i in range(0, len(STREAM), size)]
            _, deltas = parse_chunks(chunks)
            self.assertEqual(deltas, EXPECTED, f"chunk size {size}")

    def test_chunking_invariance_every_split_point(self):
        for split in range(1, len(STREAM)):
            _, deltas = parse_chunks([STREAM[:split], STREAM[split:]])
            self.assertEqual(deltas, EXPECTED, f"split at {split}")

    def test_multibyte_character_split_across_chunks(self):
        line = data_line("翻译").encode("utf-8")
        first_byte = line.index("翻".encode("utf-8"))
        chunks = [line[: first_byte + 1], line[first_byte + 1 : first_byte + 4], line[first_byte + 4 :]]
        parser, deltas = parse_chunks(chunks)
        self.assertEqual(deltas, ["翻译"])
        self.assertNotIn("�", parser.text)

    def test_line_is_not_parsed_until_complete(self):
        parser = SSEStreamParser()
        line = data_line("Hello").encode("utf-8")
        self.assertEqual(parser.feed(line[:-1]), [])
        self.assertEqual(parser.feed(line[-1:]), ["Hello"])

    def test_lines_without_data_prefix_never_emit(self):
        body = (
            'event: {"choices":[{"delta":{"content":"x"}}]}\n'
            'id: {"choices":[{"delta":{"content":"y"}}]}\n'
            '{"choices":[{"delta":{"content":"z"}}]}\n'
            ": comment\n"
        ).encode("utf-8")
        parser, deltas = parse_chunks([body])
        self.assertEqual(deltas, [])
        self.assertEqual(parser.text, "")

    def test_done_sentinel_stops_without_delta(self):
        body = (data_line("He") + "data: [DONE]\n" + data_line("ignored")).encode("utf-8")
        parser = SSEStreamParser()
        self.assertEqual(parser.feed(body), ["He"])
        self.assertTrue(parser.done)
        self.assertEqual(parser.feed(data_line("late").encode("utf-8")), [])
        self.assertEqual(parser.finish(), [])
        self.assertEqual(parser.text, "He")

    def test_malformed_line_is_skipped(self):
        body = (
            data_line("A")
            + data_line(raw="{broken")
            + data_line(raw='{"choices": []}')
            + data_line(raw='"just a string"')
            + data_line("B")
        ).encode("utf-8")
        parser, deltas = parse_chunks([body])
        self.assertEqual(deltas, ["A", "B"])
        self.assertEqual(parser.skipped_lines, 3)

    def test_crlf_line_endings(self):
        body = (data_line("He").replace("\n", "\r\n") + data_line("llo").replace("\n", "\r\n")).encode("utf-8")
        _, deltas = parse_chunks([body])
        self.assertEqual(deltas, ["He", "llo"])

    def test_unterminated_last_line_is_processed_at_end_of_input(self):
        body = (data_line("He") + data_line("llo").rstrip("\n")).encode("utf-8")
        parser = SSEStreamParser()
        self.assertEqual(parser.feed(body), ["He"])
        self.assertEqual(parser.finish(), ["llo"])
        self.assertEqual(parser.text, "Hello")

    def test_data_prefix_without_space(self):
        body = 'data:{"choices":[{"delta":{"content":"ok"}}]}\n'.encode("utf-8")
        _, deltas = parse_chunks([body])
        self.assertEqual(deltas, ["ok"])


if __name__ == "__main__":
    unittest.main()
