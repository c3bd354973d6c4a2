from demoday import create_app, socketio
from demoday.services.scheduler import start_timer_watcher

app = create_app()

if __name__ == '__main__':
    start_timer_watcher(app, socketio)
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True)
