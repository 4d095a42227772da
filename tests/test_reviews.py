import pytest
from stayhub import db
from stayhub.models.property import Property
from conftest import future, past


@pytest.fixture
def completed_stay(guest, sample_property, make_booking):
    return make_booking(sample_property, guest, past(10), past(5), status='confirmed')


def test_add_review(client, guest_headers, sample_property, completed_stay):
    """Test adding a review after checkout"""
    response = client.post(f'/api/reviews/property/{sample_property.id}', headers=guest_headers, json={
        'rating': 4,
        'comment': 'Lovely stay'
    })

    assert response.status_code == 201
    data = response.get_json()
    assert data['data']['review']['rating'] == 4
    assert data['data']['review']['user']['name'] == 'Gina Guest'

    property = db.session.get(Property, sample_property.id)
    assert property.rating_avg == 4.0
    assert property.rating_count == 1


@pytest.mark.parametrize('rating', [0, 6, 3.5, '5', True])
def test_invalid_rating(client, guest_headers, sample_property, completed_stay, rating):
    response = client.post(f'/api/reviews/property/{sample_property.id}', headers=guest_headers, json={
        'rating': rating
    })

    assert response.status_code == 400


def test_review_requires_completed_stay(client, guest, guest_headers, sample_property, make_booking):
    make_booking(sample_property, guest, future(5), future(7), status='confirmed')

    response = client.post(f'/api/reviews/property/{sample_property.id}', headers=guest_headers, json={
        'rating': 5
    })

    assert response.status_code == 403


def test_canceled_stay_does_not_count(client, guest, guest_headers, sample_property, make_booking):
    make_booking(sample_property, guest, past(10), past(5), status='canceled')

    response = client.post(f'/api/reviews/property/{sample_property.id}', headers=guest_headers, json={
        'rating': 5
    })

    assert response.status_code == 403


def test_host_cannot_review_own_property(client, host_headers, sample_property):
    response = client.post(f'/api/reviews/property/{sample_property.id}', headers=host_headers, json={
        'rating': 5
    })

    assert response.status_code == 403


def test_one_review_per_property(client, guest_headers, sample_property, completed_stay):
    client.post(f'/api/reviews/property/{sample_property.id}', headers=guest_headers, json={'rating': 5})

    response = client.post(f'/api/reviews/property/{sample_property.id}', headers=guest_headers, json={
        'rating': 3
    })

    assert response.status_code == 409


def test_rating_average(client, guest, other_guest, guest_headers, other_guest_headers, sample_property,
                        make_booking):
    make_booking(sample_property, guest, past(20), past(15), status='confirmed')
    make_booking(sample_property, other_guest, past(10), past(5), status='confirmed')

    client.post(f'/api/reviews/property/{sample_property.id}', headers=guest_headers, json={'rating': 5})
    client.post(f'/api/reviews/property/{sample_property.id}', headers=other_guest_headers, json={'rating': 2})

    response = client.get(f'/api/reviews/property/{sample_property.id}')

    assert response.status_code == 200
    data = response.get_json()['data']
    assert len(data['reviews']) == 2
    assert data['rating_avg'] == 3.5
    assert data['rating_count'] == 2


def test_update_review(client, guest_headers, host_headers, sample_property, completed_stay):
    review_id = client.post(
        f'/api/reviews/property/{sample_property.id}', headers=guest_headers, json={'rating': 2}
    ).get_json()['data']['review']['id']

    response = client.put(f'/api/reviews/{review_id}', headers=host_headers, json={'rating': 5})
    assert response.status_code == 403

    response = client.put(f'/api/reviews/{review_id}', headers=guest_headers, json={'rating': 5})
    assert response.status_code == 200
    assert db.session.get(Property, sample_property.id).rating_avg == 5.0


def test_get_review(client, guest_headers, sample_property, completed_stay):
    review_id = client.post(
        f'/api/reviews/property/{sample_property.id}', headers=guest_headers, json={'rating': 4}
    ).get_json()['data']['review']['id']

    assert client.get(f'/api/reviews/{review_id}').status_code == 200
    assert client.get('/api/reviews/999').status_code == 404
