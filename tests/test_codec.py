import pytest

from erp.codec import (
    decode_client_note,
    decode_metadata,
    decode_tags,
    encode_client_note,
    encode_metadata,
    encode_tags,
    is_metadata,
    is_tag_block,
    split_list,
)


@pytest.mark.parametrize("record", [
    {"type": "reel", "platforms": ["instagram"], "caption": "Launch day", "notes": "Use the blue logo"},
    {"type": "carousel", "platforms": ["instagram", "facebook", "tiktok"], "caption": "Slide one\nSlide two", "notes": None},
    {"type": "story", "platforms": ["linkedin"], "caption": None, "notes": "Only notes"},
    {"type": "post", "platforms": [], "caption": None, "notes": None},
])
def test_tag_blocks_round_trip(record):
    assert decode_tags(encode_tags(record)) == record


@pytest.mark.parametrize("caption,notes", [
    ("  Launch day  ", " blue logo"),
    ("\nSlide one\n", "x "),
    ("   ", None),
])
def test_tag_blocks_keep_caption_whitespace(caption, notes):
    record = {"type": "reel", "platforms": ["instagram"], "caption": caption, "notes": notes}
    assert decode_tags(encode_tags(record)) == record


def test_empty_caption_decodes_as_none():
    record = {"type": "post", "platforms": ["instagram"], "caption": "", "notes": ""}
    assert decode_tags(encode_tags(record))["caption"] is None
    assert decode_tags(encode_tags(record))["notes"] is None


def test_hand_typed_tags_are_stripped():
    record = decode_tags("[TYPE: reel]\n  Caption typed in the ERP  \nNOTES:   call Ana  ")
    assert record["caption"] == "Caption typed in the ERP"
    assert record["notes"] == "call Ana"


def test_encode_tags_layout():
    text = encode_tags({"type": "reel", "platforms": ["instagram", "tiktok"], "caption": "Hola", "notes": "x"})
    assert text == "[TYPE: reel]\n[PLATFORMS: instagram,tiktok]\n\nHola\n\nNOTES: x"


def test_decode_tags_defaults_for_hand_typed_text():
    record = decode_tags("Just a caption typed in the ERP")
    assert record == {
        "type": "post",
        "platforms": ["instagram"],
        "caption": "Just a caption typed in the ERP",
        "notes": None,
    }


@pytest.mark.parametrize("text", [None, "", "[", "[TYPE: ]", "]]][[[", "NOTES:", "{\"url\": 1}", "[PLATFORMS: ,,,]"])
def test_decode_tags_never_raises(text):
    record = decode_tags(text)
    assert set(record) == {"type", "platforms", "caption", "notes"}
    assert isinstance(record["platforms"], list)
    assert record["type"]


def test_metadata_round_trip_keeps_unicode():
    metadata = {"url": "https://cdn/x.png", "clientName": "Parroquia Señor", "feedback": []}
    text = encode_metadata(metadata)
    assert "Señor" in text
    assert decode_metadata(text) == metadata


@pytest.mark.parametrize("text,expected", [
    (None, {}),
    ("", {}),
    ("   ", {}),
    ("https://drive/file", {"url": "https://drive/file"}),
    ("{broken", {"url": "{broken"}),
    ("[1, 2]", {"url": "[1, 2]"}),
])
def test_decode_metadata_degrades_to_url(text, expected):
    assert decode_metadata(text) == expected


def test_is_metadata_separates_deliverables_from_content():
    assert is_metadata('{"app_status": "pending"}')
    assert not is_metadata("[TYPE: reel]\n[PLATFORMS: instagram]")
    assert not is_metadata("{not json")
    assert not is_metadata(None)
    assert is_tag_block("[TYPE: reel]")
    assert not is_tag_block('{"url": "x"}')


def test_client_note_round_trip_and_na():
    extras = {"instagram": "lumen", "industry": "Educación", "contactPhone": None, "token": "lum-portal-abc"}
    note = encode_client_note(extras)
    assert "Teléfono: N/A" in note
    assert decode_client_note(note) == extras


def test_client_note_reads_alternate_labels():
    note = "Instagram: @parroquia\nIndustry: Religión\nPhone: +54 11 5555"
    assert decode_client_note(note) == {
        "instagram": "parroquia",
        "industry": "Religión",
        "contactPhone": "+54 11 5555",
        "token": None,
    }


def test_split_list_accepts_erp_assign_shapes():
    assert split_list('["ana@lumen.com", "juan@lumen.com"]') == ["ana@lumen.com", "juan@lumen.com"]
    assert split_list(["x"]) == ["x"]
    assert split_list(None) == []
    assert split_list("") == []
    assert split_list("plain") == ["plain"]
