import pytest
from pydantic import ValidationError
from support_inbox.schemas import FacebookData, TwitterData


def test_facebook_data_drops_unset_keys_and_strips():
    data = FacebookData(post_id=" 1 ", sender_name="Jane")

    assert data.to_document() == {"post_id": "1", "sender_name": "Jane"}


def test_facebook_data_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        FacebookData.model_validate({"post_id": "1", "page_id": "2"})


def test_facebook_data_rejects_non_string_values():
    with pytest.raises(ValidationError):
        FacebookData.model_validate({"post_id": {"nested": True}})


def test_twitter_data_empty_document():
    assert TwitterData().to_document() == {}
    assert TwitterData(id="42").to_document() == {"id": "42"}
