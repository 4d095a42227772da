from stayhub import socketio


def _token(headers):
    return headers['Authorization'].split(' ', 1)[1]


def test_connect_with_token_joins_user_room(app, guest, guest_headers):
    socket = socketio.test_client(app, auth={'token': _token(guest_headers)})

    assert socket.is_connected()
    received = socket.get_received()
    assert received[0]['name'] == 'connected'
    assert received[0]['args'][0]['user_id'] == guest.id


def test_new_message_pushed_to_recipient(app, client, guest, host, guest_headers, host_headers):
    socket = socketio.test_client(app, auth={'token': _token(host_headers)})
    socket.get_received()

    client.post('/api/messages', headers=guest_headers, json={
        'recipient_id': host.id,
        'message_body': 'Is parking available?'
    })

    pushed = [event for event in socket.get_received() if event['name'] == 'new_message']
    assert len(pushed) == 1
    assert pushed[0]['args'][0]['sender_id'] == guest.id
    assert pushed[0]['args'][0]['message_body'] == 'Is parking available?'
