import signal
import sys

from flappy import create_app, db, socketio

app = create_app()


def _shutdown(signum, frame):
    # Release pooled database connections before exiting
    with app.app_context():
        db.engine.dispose()
    app.logger.info(f"[shutdown] signal={signum}")
    sys.exit(0)


if __name__ == '__main__':
    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True)
