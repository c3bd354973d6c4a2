def _names(received):
    return [pkt['name'] for pkt in received]


def _first(received, name):
    return next(pkt['args'][0] for pkt in received if pkt['name'] == name)


def test_socket_connect_lists_topics(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    received = sio_client.get_received('/ws')
    connected = _first(received, 'connected')
    assert set(connected['topics']) == {'leaderboard', 'presentation', 'timer', 'vote', 'team'}


def test_subscribe_sends_ack_and_snapshot(sio_client):
    sio_client.get_received('/ws')  # flush

    sio_client.emit('subscribe', {'topic': 'timer'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _names(received) == ['subscribed', 'timer:update']
    assert _first(received, 'subscribed') == {'topic': 'timer'}
    assert _first(received, 'timer:update')['durationSeconds'] == 300


def test_topic_shortcut_events(sio_client):
    sio_client.get_received('/ws')

    sio_client.emit('presentation:subscribe', namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _first(received, 'presentation:queue:updated') == {'current': None, 'upcoming': [], 'completed': []}

    sio_client.emit('leaderboard:request', namespace='/ws')
    assert _first(sio_client.get_received('/ws'), 'leaderboard:update') == []


def test_unknown_topic_is_refused(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('subscribe', {'topic': 'scores'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _names(received) == ['error']


def test_ping_pong(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    assert _first(sio_client.get_received('/ws'), 'pong') == {'n': 1}


def test_subscribers_receive_state_changes(sio_client, client, make_team, make_user):
    make_team('Aurora')
    make_team('Borealis')
    judge = make_user('judge')

    sio_client.emit('subscribe', {'topic': 'presentation'}, namespace='/ws')
    sio_client.emit('subscribe', {'topic': 'leaderboard'}, namespace='/ws')
    sio_client.emit('subscribe', {'topic': 'vote'}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post('/api/presentations/initialize')
    client.post('/api/presentations/advance')
    client.post('/api/presentations/advance')
    received = sio_client.get_received('/ws')
    names = _names(received)
    assert 'presentation:update' in names
    assert 'presentation:queue:updated' in names
    assert 'leaderboard:team:update' in names
    # Not subscribed to the timer or team topics
    assert 'timer:update' not in names
    assert 'team:update' not in names

    presented = client.get('/api/presentations/queue').get_json()['completed'][0]['teamId']
    client.post('/api/votes', json={'voter_id': judge.id, 'team_id': presented, 'is_final_vote': True})
    received = sio_client.get_received('/ws')
    assert _names(received) == ['vote:submitted', 'vote:count', 'leaderboard:update', 'leaderboard:team:update']
    assert _first(received, 'vote:count') == {'teamId': presented, 'count': 1}
    board = _first(received, 'leaderboard:update')
    assert board[0]['teamId'] == presented
    assert board[0]['voteCount'] == 1
    assert len(board) == 1


def test_unsubscribe_stops_updates(sio_client, client):
    sio_client.emit('timer:subscribe', namespace='/ws')
    sio_client.emit('timer:unsubscribe', namespace='/ws')
    assert 'unsubscribed' in _names(sio_client.get_received('/ws'))

    client.post('/api/timer/reset')
    assert 'timer:update' not in _names(sio_client.get_received('/ws'))
