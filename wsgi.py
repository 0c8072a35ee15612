import atexit

from appcore import create_app
from appcore.lifecycle import lifecycle_for

app = create_app()

_lifecycle = lifecycle_for(app)
if _lifecycle is not None:
    atexit.register(_lifecycle.on_stop)

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000)
