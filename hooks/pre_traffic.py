import json
import boto3
import os
import logging

from domain.models import HandlerInput
from integrations.lambda_ses import LambdaSes

logger = logging.getLogger()
logger.setLevel(logging.INFO)

codedeploy = boto3.client('codedeploy')
lambda_client = boto3.client('lambda')


def lambda_handler(event, context):
    """
    Pre-traffic hook for CodeDeploy.
    Invokes the new version with an empty request (no email is sent)
    before traffic is shifted to it.
    """
    logger.info(f"Pre-traffic hook triggered: {json.dumps(event)}")

    deployment_id = event['DeploymentId']
    lifecycle_event_hook_execution_id = event['LifecycleEventHookExecutionId']

    try:
        target_function = os.environ.get('TARGET_FUNCTION')
        if not target_function:
            raise ValueError("TARGET_FUNCTION environment variable is not set")

        logger.info(f"Running smoke test on {target_function}")

        lambda_ses = LambdaSes(lambda_client, function_name=target_function)
        response = lambda_ses.send_or_throw(HandlerInput())

        logger.info(f"Test response: status={response.status}, version={response.version}")

        if response.status != 200:
            raise Exception(f"Unexpected status code: {response.status}")

        if response.payload is None or not response.payload.is_empty:
            raise Exception(f"Expected an empty envelope, got: {response.payload}")

        logger.info("Pre-traffic validation passed")

        codedeploy.put_lifecycle_event_hook_execution_status(
            deploymentId=deployment_id,
            lifecycleEventHookExecutionId=lifecycle_event_hook_execution_id,
            status='Succeeded'
        )

        return {
            'statusCode': 200,
            'body': json.dumps('Pre-traffic validation succeeded')
        }

    except Exception as e:
        logger.error(f"Pre-traffic validation failed: {str(e)}", exc_info=True)

        # Report failure - this will prevent deployment
        codedeploy.put_lifecycle_event_hook_execution_status(
            deploymentId=deployment_id,
            lifecycleEventHookExecutionId=lifecycle_event_hook_execution_id,
            status='Failed'
        )

        return {
            'statusCode': 500,
            'body': json.dumps(f'Pre-traffic validation failed: {str(e)}')
        }
