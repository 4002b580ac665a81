import signal
import sys

from quizroom import create_app, socketio

app = create_app()


def shutdown(signum, frame):
    # Pending background saves may not finish; write the snapshot inline first
    app.logger.info(f"[shutdown] signal={signum}")
    app.extensions['quizroom'].store.flush()
    sys.exit(0)


if __name__ == '__main__':
    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, host='0.0.0.0', port=app.config['PORT'])
