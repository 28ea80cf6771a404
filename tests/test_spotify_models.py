"""Test Spotify data models"""

import pytest

from spotify_exporter.spotify.models import Artist, TokenRecord, Track


class TestTrack:
    """Test Track construction and serialization"""

    def test_from_saved_item(self, sample_saved_item):
        """Test Track creation from a /me/tracks item"""
        track = Track.from_spotify_api(sample_saved_item)

        assert track.id == 'test_track_123'
        assert track.name == 'Test Song'
        assert track.artists == (Artist(name='Test Artist'),)
        assert track.artist_names == 'Test Artist'

    def test_from_bare_track(self, sample_saved_item):
        track = Track.from_spotify_api(sample_saved_item['track'])

        assert track.id == 'test_track_123'

    def test_item_without_track(self):
        """Unavailable tracks come back as {"track": null}"""
        with pytest.raises(ValueError):
            Track.from_spotify_api({'added_at': '2024-01-01T00:00:00Z', 'track': None})

    def test_local_file_without_id(self):
        with pytest.raises(ValueError):
            Track.from_spotify_api({'track': {'id': None, 'name': 'Local file', 'is_local': True}})

    def test_multiple_artists(self):
        track = Track.from_spotify_api({
            'id': 'x',
            'name': 'Collab',
            'artists': [{'name': 'One'}, {'name': 'Two'}],
        })

        assert track.artist_names == 'One, Two'

    def test_dict_round_trip(self, t2):
        assert Track.from_dict(t2.to_dict()) == t2

    def test_from_dict_requires_id(self):
        with pytest.raises(KeyError):
            Track.from_dict({'name': 'No id'})

    def test_tracks_are_hashable(self, t1, t2):
        assert len({t1, t2, t1}) == 2


class TestTokenRecord:
    """Test TokenRecord validation"""

    def test_from_response_ignores_extra_keys(self):
        record = TokenRecord.from_dict({
            'access_token': 'a',
            'refresh_token': 'r',
            'expires_in': 3600,
            'token_type': 'Bearer',
            'scope': 'user-library-read',
        })

        assert record == TokenRecord(access_token='a', refresh_token='r', expires_in=3600)

    @pytest.mark.parametrize('payload', [
        [],
        {'refresh_token': 'r', 'expires_in': 1},
        {'access_token': '', 'refresh_token': 'r', 'expires_in': 1},
        {'access_token': 'a', 'expires_in': 1},
        {'access_token': 'a', 'refresh_token': 'r'},
        {'access_token': 'a', 'refresh_token': 'r', 'expires_in': '3600'},
        {'access_token': 'a', 'refresh_token': 'r', 'expires_in': True},
    ])
    def test_rejects_invalid_payloads(self, payload):
        with pytest.raises(ValueError):
            TokenRecord.from_dict(payload)

    def test_repr_hides_tokens(self, tokens):
        text = repr(tokens)

        assert 'access_123' not in text
        assert 'refresh_456' not in text
        assert '3600' in text
