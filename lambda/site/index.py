import json
import os
from urllib.parse import urlparse

import boto3
from botocore.exceptions import ClientError

secrets_client = boto3.client('secretsmanager')

# Set by the "db" database binding
SECRET_ARN_VARIABLE = 'RDS_DB_SECRETARN'


def parse_database_url(url):
    """Split DATABASE_URL into the parts that are safe to display"""
    parsed = urlparse(url)
    return {
        'engine': parsed.scheme,
        'host': parsed.hostname,
        'database': parsed.path.lstrip('/'),
    }


def json_response(status_code, body):
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }


def render_index(database):
    return f"""<!DOCTYPE html>
<html>
  <head><title>t3-rds-site</title></head>
  <body>
    <h1>t3-rds-site</h1>
    <p>Connected to {database['engine']} database <code>{database['database']}</code>
    on <code>{database['host']}</code>.</p>
  </body>
</html>
"""


def health_check():
    secret_arn = os.environ.get(SECRET_ARN_VARIABLE)
    if not secret_arn:
        return json_response(503, {'status': 'error', 'error': 'Database binding missing'})

    try:
        response = secrets_client.describe_secret(SecretId=secret_arn)
    except ClientError as e:
        print(f"Error describing secret: {str(e)}")
        return json_response(503, {'status': 'error', 'error': e.response['Error']['Code']})

    return json_response(200, {'status': 'ok', 'secret': response.get('Name')})


def lambda_handler(event, context):
    """
    Serve the site from a Lambda function URL

    Expected event format (function URL payload v2):
    {
        "rawPath": "/health",
        "requestContext": {"http": {"method": "GET"}}
    }
    """
    method = event.get('requestContext', {}).get('http', {}).get('method', 'GET')
    path = event.get('rawPath', '/')

    if method != 'GET':
        return json_response(405, {'error': f'Method {method} not allowed'})

    if path == '/health':
        return health_check()

    database_url = os.environ.get('DATABASE_URL')
    if not database_url:
        return json_response(500, {'error': 'DATABASE_URL is not configured'})

    return {
        'statusCode': 200,
        'headers': {'Content-Type': 'text/html; charset=utf-8'},
        'body': render_index(parse_database_url(database_url))
    }
