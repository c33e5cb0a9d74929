#!/usr/bin/env python3

from flask import Flask, request, jsonify

app = Flask(__name__)

METHODS = ['GET', 'HEAD', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']


@app.route('/', methods=METHODS)
def echo():
    """Report back what the client sent, as the server understood it"""
    files = {}
    for name, upload in request.files.items(multi=True):
        files[name] = {
            'filename': upload.filename,
            'content_type': upload.mimetype,
            'content': upload.read().decode('utf-8', errors='replace'),
        }

    auth = request.authorization
    return jsonify({
        'method': request.method,
        'headers': [[k, v] for k, v in request.headers.items()],
        'cookies': request.cookies.to_dict(),
        'authorization': {'username': auth.username, 'password': auth.password} if auth else None,
        'form': [[k, v] for k, v in request.form.items(multi=True)],
        'files': files,
        'data': request.get_data(as_text=True) if not request.form and not files else '',
    })


if __name__ == '__main__':
    # smol-curl always talks to port 80, so this needs the privilege to bind it
    print("Starting echo server on http://localhost:80")
    app.run(host='0.0.0.0', port=80, debug=True)
