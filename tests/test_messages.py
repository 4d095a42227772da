def _send(client, headers, recipient_id, body='Hello there'):
    return client.post('/api/messages', headers=headers, json={
        'recipient_id': recipient_id,
        'message_body': body
    })


def test_send_message(client, guest_headers, guest, host):
    """Test sending a direct message"""
    response = _send(client, guest_headers, host.id, 'Is parking available?')

    assert response.status_code == 201
    data = response.get_json()
    assert data['message'] == 'Message sent'
    assert data['data']['message']['sender_id'] == guest.id
    assert data['data']['message']['recipient']['name'] == 'Hana Host'
    assert data['data']['message']['read_at'] is None


def test_cannot_message_self(client, guest_headers, guest):
    response = _send(client, guest_headers, guest.id)

    assert response.status_code == 400


def test_message_unknown_recipient(client, guest_headers):
    response = _send(client, guest_headers, 999)

    assert response.status_code == 404


def test_message_inactive_recipient(client, guest_headers, make_user):
    gone = make_user('gone@example.com', is_active=False)

    response = _send(client, guest_headers, gone.id)

    assert response.status_code == 404


def test_empty_message_rejected(client, guest_headers, host):
    response = _send(client, guest_headers, host.id, '   ')

    assert response.status_code == 400


def test_long_message_rejected(client, guest_headers, host):
    response = _send(client, guest_headers, host.id, 'x' * 5001)

    assert response.status_code == 400


def test_conversations(client, guest_headers, host_headers, other_guest_headers, guest, host, other_guest):
    _send(client, guest_headers, host.id, 'First')
    _send(client, host_headers, guest.id, 'Reply')
    _send(client, other_guest_headers, host.id, 'Another guest')

    response = client.get('/api/messages/conversations', headers=host_headers)

    assert response.status_code == 200
    conversations = response.get_json()['data']['conversations']
    assert [c['user']['id'] for c in conversations] == [other_guest.id, guest.id]
    assert conversations[0]['unread_count'] == 1
    assert conversations[1]['last_message']['preview'] == 'Reply'
    assert conversations[1]['unread_count'] == 1


def test_reading_conversation_marks_read(client, guest_headers, host_headers, guest, host):
    _send(client, guest_headers, host.id, 'One')
    _send(client, guest_headers, host.id, 'Two')

    assert client.get('/api/messages/unread-count', headers=host_headers).get_json()['data']['unread_count'] == 2

    response = client.get(f'/api/messages/conversations/{guest.id}', headers=host_headers)

    assert response.status_code == 200
    messages = response.get_json()['data']['messages']
    assert [m['message_body'] for m in messages] == ['Two', 'One']
    assert client.get('/api/messages/unread-count', headers=host_headers).get_json()['data']['unread_count'] == 0
    # Sender's own view is unaffected
    assert client.get('/api/messages/unread-count', headers=guest_headers).get_json()['data']['unread_count'] == 0
